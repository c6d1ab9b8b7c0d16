import unittest
from unittest import mock

from sqlmodel import select

import models
from api_test_base import ApiTestCase
from core import webhooks
from models import UserRole


class TestUserRoutes(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user(role=UserRole.admin, email="admin@example.com")
        self.sales = self.make_user(role=UserRole.sales, email="sales@example.com")
        self.buyer = self.make_user(role=UserRole.buyer, email="buyer@example.com")

    # --- Listing ---

    def test_admin_lists_everyone(self):
        response = self.client.get("/api/users", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200, response.text)
        emails = [u["email"] for u in response.json()]
        self.assertEqual(emails, ["admin@example.com", "sales@example.com", "buyer@example.com"])

    def test_sales_lists_self_and_assigned_users(self):
        other_buyer = self.make_user(role=UserRole.buyer, email="other@example.com")
        product = self.make_product()
        demo = self.make_demo(product.id)
        self.assign(self.buyer.id, demo.id, assigned_by_user_id=self.sales.id)
        self.assign(other_buyer.id, demo.id, assigned_by_user_id=self.admin.id)

        response = self.client.get("/api/users", headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 200, response.text)
        emails = {u["email"] for u in response.json()}
        self.assertEqual(emails, {"sales@example.com", "buyer@example.com"})

    def test_buyer_cannot_list_users(self):
        response = self.client.get("/api/users", headers=self.auth_headers(self.buyer))
        self.assertEqual(response.status_code, 403, response.text)

    def test_anonymous_cannot_list_users(self):
        response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 401, response.text)

    # --- Creation ---

    def test_admin_creates_sales_user(self):
        payload = {"name": "New Seller", "email": "New.Seller@Example.com", "password": "secret99", "role": "sales"}
        response = self.client.post("/api/users", json=payload, headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["email"], "new.seller@example.com")
        self.assertEqual(data["role"], "sales")
        self.assertEqual(data["created_by_user_id"], self.admin.id)
        self.assertNotIn("password", data)

    def test_role_defaults_to_buyer(self):
        payload = {"name": "Quiet Buyer", "email": "quiet@example.com", "password": "secret99"}
        response = self.client.post("/api/users", json=payload, headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["role"], "buyer")

    def test_sales_cannot_create_staff(self):
        for role in ("sales", "admin"):
            payload = {"name": "Nope", "email": f"nope-{role}@example.com", "password": "secret99", "role": role}
            response = self.client.post("/api/users", json=payload, headers=self.auth_headers(self.sales))
            self.assertEqual(response.status_code, 403, response.text)

    def test_duplicate_email_rejected(self):
        payload = {"name": "Again", "email": "BUYER@example.com", "password": "secret99"}
        response = self.client.post("/api/users", json=payload, headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 400, response.text)
        self.assertEqual(response.json()["detail"], "Email already registered.")

    def test_invalid_payloads_rejected(self):
        bad_payloads = [
            {"name": "Short", "email": "short@example.com", "password": "123"},
            {"name": "", "email": "blank@example.com", "password": "secret99"},
            {"name": "Bad Email", "email": "not-an-email", "password": "secret99"},
            {"name": "Bad Role", "email": "role@example.com", "password": "secret99", "role": "owner"},
        ]
        for payload in bad_payloads:
            response = self.client.post("/api/users", json=payload, headers=self.auth_headers(self.admin))
            self.assertEqual(response.status_code, 400, f"{payload}: {response.text}")

    def test_creation_emits_webhook(self):
        payload = {"name": "Hooked", "email": "hooked@example.com", "password": "secret99"}
        with mock.patch("core.webhooks.send_webhook") as send:
            response = self.client.post("/api/users", json=payload, headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 201, response.text)
        send.assert_called_once()
        event, data, metadata = send.call_args.args
        self.assertEqual(event, webhooks.USER_CREATED)
        self.assertEqual(data["email"], "hooked@example.com")
        self.assertEqual(metadata["user_id"], str(self.admin.id))

    # --- Deletion ---

    def test_admin_deletes_user_and_dependents(self):
        product = self.make_product()
        demo = self.make_demo(product.id)
        self.assign(self.buyer.id, demo.id, assigned_by_user_id=self.sales.id)
        self.make_feedback(demo.id, user_id=self.buyer.id)
        lead = self.make_lead(shared_by_user_id=self.sales.id)
        with self.session() as db:
            db.add(models.StorageUsage(user_id=self.buyer.id, total_bytes=10))
            db.commit()

        response = self.client.delete(f"/api/users/{self.buyer.id}", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200, response.text)

        response = self.client.delete(f"/api/users/{self.sales.id}", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 200, response.text)

        with self.session() as db:
            self.assertIsNone(db.get(models.User, self.buyer.id))
            self.assertEqual(db.exec(select(models.DemoAssignment)).all(), [])
            self.assertEqual(db.exec(select(models.Feedback)).all(), [])
            self.assertEqual(db.exec(select(models.StorageUsage)).all(), [])
            kept_lead = db.get(models.Lead, lead.id)
            self.assertIsNotNone(kept_lead)
            self.assertIsNone(kept_lead.shared_by_user_id)

    def test_admin_cannot_delete_self(self):
        response = self.client.delete(f"/api/users/{self.admin.id}", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 400, response.text)

    def test_delete_missing_user(self):
        response = self.client.delete("/api/users/9999", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 404, response.text)

    def test_sales_cannot_delete(self):
        response = self.client.delete(f"/api/users/{self.buyer.id}", headers=self.auth_headers(self.sales))
        self.assertEqual(response.status_code, 403, response.text)

    # --- Demo assignments ---

    def test_assign_and_read_demos(self):
        product = self.make_product()
        first = self.make_demo(product.id, title="First")
        second = self.make_demo(product.id, title="Second")
        headers = self.auth_headers(self.sales)

        response = self.client.post(
            f"/api/users/{self.buyer.id}/demos", json={"demo_ids": [second.id, first.id, second.id]}, headers=headers
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual([d["title"] for d in response.json()], ["First", "Second"])

        response = self.client.post(f"/api/users/{self.buyer.id}/demos", json={"demo_ids": [first.id]}, headers=headers)
        self.assertEqual(response.status_code, 200, response.text)

        response = self.client.get(f"/api/users/{self.buyer.id}/demos", headers=headers)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json(), [{"id": first.id, "title": "First"}])

        with self.session() as db:
            assignments = db.exec(select(models.DemoAssignment)).all()
            self.assertEqual(len(assignments), 1)
            self.assertEqual(assignments[0].assigned_by_user_id, self.sales.id)

    def test_assign_empty_list_clears(self):
        product = self.make_product()
        demo = self.make_demo(product.id)
        self.assign(self.buyer.id, demo.id)
        response = self.client.post(
            f"/api/users/{self.buyer.id}/demos", json={"demo_ids": []}, headers=self.auth_headers(self.admin)
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json(), [])

    def test_assign_unknown_demo(self):
        response = self.client.post(
            f"/api/users/{self.buyer.id}/demos", json={"demo_ids": [404]}, headers=self.auth_headers(self.admin)
        )
        self.assertEqual(response.status_code, 400, response.text)

    def test_assign_unknown_user(self):
        response = self.client.post("/api/users/9999/demos", json={"demo_ids": []}, headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 404, response.text)
        response = self.client.get("/api/users/9999/demos", headers=self.auth_headers(self.admin))
        self.assertEqual(response.status_code, 404, response.text)

    def test_assignment_emits_one_webhook_per_demo(self):
        product = self.make_product()
        demos = [self.make_demo(product.id, title=f"Demo {i}") for i in range(2)]
        with mock.patch("core.webhooks.send_webhook") as send:
            response = self.client.post(
                f"/api/users/{self.buyer.id}/demos",
                json={"demo_ids": [d.id for d in demos]},
                headers=self.auth_headers(self.admin),
            )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(send.call_count, 2)
        self.assertTrue(all(c.args[0] == webhooks.DEMO_ASSIGNED for c in send.call_args_list))

    def test_buyer_cannot_assign(self):
        response = self.client.post(
            f"/api/users/{self.buyer.id}/demos", json={"demo_ids": []}, headers=self.auth_headers(self.buyer)
        )
        self.assertEqual(response.status_code, 403, response.text)


if __name__ == "__main__":
    unittest.main()
