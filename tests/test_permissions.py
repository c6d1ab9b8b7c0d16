import sys
import unittest
from pathlib import Path

# --- Add project root to sys.path ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import models
from core.permissions import can_assign_demos, can_manage_users, has_permission, is_staff
from models import UserRole


def _user(role: UserRole) -> models.User:
    return models.User(name="Someone", email=f"{role.value}@example.com", hashed_password="x", role=role)


class TestHasPermission(unittest.TestCase):

    def test_admin_satisfies_everything(self):
        admin = _user(UserRole.admin)
        for required in UserRole:
            self.assertTrue(has_permission(admin, required), required)

    def test_sales_satisfies_sales_and_buyer(self):
        sales = _user(UserRole.sales)
        self.assertTrue(has_permission(sales, UserRole.sales))
        self.assertTrue(has_permission(sales, UserRole.buyer))
        self.assertFalse(has_permission(sales, UserRole.admin))

    def test_buyer_only_satisfies_buyer(self):
        buyer = _user(UserRole.buyer)
        self.assertTrue(has_permission(buyer, UserRole.buyer))
        self.assertFalse(has_permission(buyer, UserRole.sales))
        self.assertFalse(has_permission(buyer, UserRole.admin))

    def test_any_of_several_roles(self):
        buyer = _user(UserRole.buyer)
        self.assertTrue(has_permission(buyer, [UserRole.admin, UserRole.buyer]))
        self.assertFalse(has_permission(buyer, (UserRole.admin, UserRole.sales)))

    def test_plain_strings_are_accepted(self):
        self.assertTrue(has_permission(_user(UserRole.sales), "buyer"))
        self.assertFalse(has_permission(_user(UserRole.sales), ["admin"]))

    def test_missing_user(self):
        self.assertFalse(has_permission(None, UserRole.buyer))


class TestStaffHelpers(unittest.TestCase):

    def test_is_staff(self):
        self.assertTrue(is_staff(_user(UserRole.admin)))
        self.assertTrue(is_staff(_user(UserRole.sales)))
        self.assertFalse(is_staff(_user(UserRole.buyer)))
        self.assertFalse(is_staff(None))

    def test_user_management_and_assignment_follow_staff(self):
        for role in UserRole:
            user = _user(role)
            self.assertEqual(can_manage_users(user), role != UserRole.buyer)
            self.assertEqual(can_assign_demos(user), role != UserRole.buyer)


if __name__ == "__main__":
    unittest.main()
