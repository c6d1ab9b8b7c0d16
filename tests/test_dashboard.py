import unittest
from unittest import mock

from sqlalchemy.exc import OperationalError

from api_test_base import ApiTestCase
from models import DemoStatus, UserRole


class TestHealthRoute(ApiTestCase):

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["status"], "healthy")
        self.assertEqual(data["database"], "connected")
        self.assertEqual(data["service"], "demo-hub")

    def test_health_reports_database_failure(self):
        with mock.patch("sqlmodel.Session.exec", side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
            response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 503, response.text)
        self.assertEqual(response.json()["status"], "unhealthy")
        self.assertEqual(response.json()["database"], "disconnected")


class TestDashboardRoutes(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user(role=UserRole.admin)
        self.sales = self.make_user(role=UserRole.sales)
        self.buyer = self.make_user(role=UserRole.buyer)

        product = self.make_product(name="Acme CRM", corporate_color="#1F6FEB")
        self.make_product(name="Empty Product")
        self.popular = self.make_demo(product.id, title="Popular")
        self.quiet = self.make_demo(product.id, title="Quiet", status=DemoStatus.inactive)
        self.assign(self.buyer.id, self.popular.id, assigned_by_user_id=self.sales.id)

        self.own_lead = self.make_lead(email="own@example.com", shared_by_user_id=self.sales.id)
        self.other_lead = self.make_lead(email="other@example.com")
        self.make_feedback(self.popular.id, lead_id=self.own_lead.id, user_id=self.buyer.id,
                           attended_by_user_id=self.sales.id, system_rating=5, promoter_rating=3)
        self.make_feedback(self.quiet.id, lead_id=self.other_lead.id, system_rating=2, promoter_rating=4)

    def test_admin_dashboard(self):
        response = self.client.get("/api/dashboard", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        kpis = data["kpis"]
        self.assertEqual(kpis["total_demos"], 2)
        self.assertEqual(kpis["active_demos"], 1)
        self.assertEqual(kpis["total_leads"], 2)
        self.assertEqual(kpis["total_users"], 3)
        self.assertEqual(kpis["total_feedbacks"], 2)
        self.assertEqual(kpis["avg_system_rating"], "3.5")

        self.assertEqual(data["top_requested_demo"]["demo_title"], "Popular")
        self.assertEqual(data["top_requested_demo"]["assignment_count"], 1)
        self.assertEqual(data["top_rated_demo"]["demo_title"], "Popular")
        self.assertEqual(data["top_rated_demo"]["avg_rating"], 5.0)
        self.assertEqual(sum(d["count"] for d in data["demos_over_time"]), 2)
        self.assertEqual(sum(d["count"] for d in data["leads_over_time"]), 2)
        self.assertEqual(
            sorted((d["status"], d["count"]) for d in data["demos_by_status"]), [("active", 1), ("inactive", 1)]
        )
        self.assertEqual(len(data["top_active_leads"]), 2)

        activity = {a["user_id"]: a for a in data["user_activity"]}
        self.assertEqual(activity[self.buyer.id]["activity_count"], 2)
        self.assertEqual(activity[self.buyer.id]["user_role"], "buyer")

    def test_sales_dashboard_is_scoped(self):
        response = self.client.get("/api/dashboard", headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["kpis"]["total_leads"], 1)
        self.assertEqual(data["kpis"]["total_feedbacks"], 1)
        self.assertEqual(data["kpis"]["avg_system_rating"], "5.0")
        self.assertEqual(data["kpis"]["total_demos"], 2)
        self.assertEqual([l["lead_email"] for l in data["top_active_leads"]], ["own@example.com"])

    def test_dashboard_forbidden_for_buyer(self):
        self.assertEqual(self.client.get("/api/dashboard", headers=self.auth_headers(self.buyer)).status_code, 403)
        self.assertEqual(self.client.get("/api/dashboard/stats", headers=self.auth_headers(self.buyer)).status_code, 403)

    def test_stats(self):
        response = self.client.get("/api/dashboard/stats", headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(data["demos"], {"active": 1, "trend": 100.0})
        self.assertEqual(data["leads"], {"total": 2, "trend": 100.0})
        self.assertEqual(data["conversion"]["rate"], 100.0)
        self.assertEqual(data["ratings"]["system"], 3.5)
        self.assertEqual(data["ratings"]["promoter"], 3.5)
        self.assertEqual(data["ratings"]["average"], 3.5)
        self.assertEqual(data["ratings"]["trend"], 100.0)

    def test_analytics(self):
        response = self.client.get("/api/analytics", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()
        self.assertEqual(
            sorted((r["role"], r["count"]) for r in data["users_by_role"]), [("admin", 1), ("buyer", 1), ("sales", 1)]
        )
        self.assertEqual(data["total_leads"], 2)
        self.assertEqual(data["total_demos"], 2)
        self.assertEqual(data["total_users"], 3)
        self.assertEqual(data["avg_ratings"], {"system": "3.5", "promoter": "3.5"})
        self.assertEqual(data["top_demos"][0]["demo_title"], "Popular")
        self.assertNotIn("product_logo", data["top_demos"][0])
        self.assertEqual(
            data["demos_by_product"],
            [
                {"product_name": "Acme CRM", "product_color": "#1F6FEB", "count": 2},
                {"product_name": "Empty Product", "product_color": None, "count": 0},
            ],
        )

    def test_analytics_is_admin_only(self):
        self.assertEqual(self.client.get("/api/analytics", headers=self.auth_headers(self.sales)).status_code, 403)


class TestEmptyDashboard(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user(role=UserRole.admin)

    def test_stats_on_empty_database(self):
        data = self.client.get("/api/dashboard/stats", headers=self.auth_headers(self.admin)).json()
        self.assertEqual(data["leads"], {"total": 0, "trend": 0.0})
        self.assertEqual(data["conversion"], {"rate": 0.0, "trend": 0.0})
        self.assertEqual(data["ratings"]["average"], 0.0)

    def test_dashboard_on_empty_database(self):
        data = self.client.get("/api/dashboard", headers=self.auth_headers(self.admin)).json()
        self.assertEqual(data["kpis"]["avg_system_rating"], "0.0")
        self.assertIsNone(data["top_rated_demo"])
        self.assertIsNone(data["top_requested_demo"])
        self.assertEqual(data["demos_over_time"], [])


if __name__ == "__main__":
    unittest.main()
