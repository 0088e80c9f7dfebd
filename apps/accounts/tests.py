from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog

User = get_user_model()


class AuthFlowTests(APITestCase):
    def setUp(self):
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller", name="Sami")

    def login(self, username="seller", password="seller123"):
        return self.client.post("/api/login/", {"username": username, "password": password}, format="json")

    def use(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_login_returns_session_payload(self):
        response = self.login()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["success"])
        data = response.data["data"]
        self.assertTrue(data["token"])
        self.assertEqual(data["user"]["username"], "seller")
        self.assertEqual(data["role_name"], "Seller")
        self.assertIn("manage_sales", data["permissions"])
        self.assertNotIn("manage_users", data["permissions"])

    def test_bad_credentials_are_401(self):
        response = self.login(password="wrong")
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.data["success"])
        self.assertEqual(response.data["message"], "Invalid username or password")

    def test_inactive_account_is_403(self):
        self.seller.is_active = False
        self.seller.save()
        response = self.login()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "account_inactive")

    def test_new_login_revokes_previous_token(self):
        first = self.login().data["data"]["token"]
        second = self.login().data["data"]["token"]

        self.use(first)
        self.assertEqual(self.client.get("/api/user/").status_code, 401)
        self.use(second)
        response = self.client.get("/api/user/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["user"]["name"], "Sami")

    def test_logout_revokes_token(self):
        token = self.login().data["data"]["token"]
        self.use(token)
        self.assertEqual(self.client.post("/api/logout/").status_code, 200)
        self.assertEqual(self.client.get("/api/user/").status_code, 401)

    def test_refresh_keeps_session_claim(self):
        refresh = self.login().data["data"]["refresh"]
        response = self.client.post("/api/token/refresh/", {"refresh": refresh}, format="json")
        self.assertEqual(response.status_code, 200)

        self.use(response.data["access"])
        self.assertEqual(self.client.get("/api/user/").status_code, 200)

    def test_change_password(self):
        self.use(self.login().data["data"]["token"])

        wrong = self.client.post(
            "/api/change-password/",
            {"current_password": "nope", "password": "newpass1", "password_confirmation": "newpass1"},
            format="json",
        )
        self.assertEqual(wrong.status_code, 422)
        self.assertIn("current_password", wrong.data["errors"])

        mismatch = self.client.post(
            "/api/change-password/",
            {"current_password": "seller123", "password": "newpass1", "password_confirmation": "other"},
            format="json",
        )
        self.assertEqual(mismatch.status_code, 422)

        changed = self.client.post(
            "/api/change-password/",
            {"current_password": "seller123", "password": "newpass1", "password_confirmation": "newpass1"},
            format="json",
        )
        self.assertEqual(changed.status_code, 200)
        self.seller.refresh_from_db()
        self.assertTrue(self.seller.check_password("newpass1"))

    def test_update_profile(self):
        self.use(self.login().data["data"]["token"])
        response = self.client.post("/api/update-profile/", {"name": "Sami B.", "phone": "0555"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["user"]["name"], "Sami B.")
        self.assertEqual(response.data["data"]["user"]["phone"], "0555")

    def test_unauthenticated_request_is_401(self):
        self.assertEqual(self.client.get("/api/user/").status_code, 401)


class SuperAdminSetupTests(APITestCase):
    payload = {
        "name": "Owner",
        "username": "owner",
        "password": "owner123",
        "password_confirmation": "owner123",
    }

    def test_setup_only_once(self):
        check = self.client.get("/api/check-super-admin/")
        self.assertEqual(check.data["data"], {"super_admin_exists": False, "setup_required": True})

        created = self.client.post("/api/setup-super-admin/", self.payload, format="json")
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.data["data"]["role"], "super_admin")

        again = self.client.post("/api/setup-super-admin/", {**self.payload, "username": "owner2"}, format="json")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(User.objects.filter(role="super_admin").count(), 1)
        self.assertTrue(self.client.get("/api/check-super-admin/").data["data"]["super_admin_exists"])

    def test_bootstrap_command(self):
        out = StringIO()
        call_command("bootstrap_super_admin", username="root", password="root1234", stdout=out)
        self.assertTrue(User.objects.filter(username="root", role="super_admin").exists())

        call_command("bootstrap_super_admin", username="root2", password="root1234", stdout=out)
        self.assertFalse(User.objects.filter(username="root2").exists())


class UserManagementTests(APITestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="owner123", role="super_admin", name="Owner")
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin", name="Nadia")
        token = self.client.post("/api/login/", {"username": "owner", "password": "owner123"}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['data']['token']}")

    def test_create_list_update_delete(self):
        created = self.client.post(
            "/api/users/",
            {"name": "Tarek", "username": "tarek", "password": "tarek123", "role": "technician", "phone": "0661"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        user = User.objects.get(username="tarek")
        self.assertTrue(user.check_password("tarek123"))
        self.assertTrue(AuditLog.objects.filter(action="accounts.user.create", entity_id=str(user.id)).exists())

        listed = self.client.get("/api/users/?role=technician")
        self.assertEqual(listed.data["count"], 1)
        everyone = self.client.get("/api/users/")
        self.assertNotIn("owner", [row["username"] for row in everyone.data["results"]])

        updated = self.client.patch(f"/api/users/{user.id}/", {"is_active": False}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(self.client.get("/api/users/?is_active=false").data["count"], 1)

        deleted = self.client.delete(f"/api/users/{user.id}/")
        self.assertEqual(deleted.status_code, 200)
        self.assertFalse(User.objects.filter(pk=user.pk).exists())

    def test_super_admin_role_cannot_be_assigned(self):
        response = self.client.post(
            "/api/users/",
            {"name": "Evil", "username": "evil", "password": "evil1234", "role": "super_admin"},
            format="json",
        )
        self.assertEqual(response.status_code, 422)
        self.assertIn("role", response.data["errors"])

    def test_reset_password_ends_user_session(self):
        admin_client = self.client_class()
        token = admin_client.post("/api/login/", {"username": "admin", "password": "admin123"}, format="json")
        admin_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['data']['token']}")

        response = self.client.post(f"/api/users/{self.admin.id}/reset-password/", {"password": "fresh123"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(admin_client.get("/api/user/").status_code, 401)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.check_password("fresh123"))

    def test_statistics(self):
        User.objects.create_user(username="s1", password="x123456", role="seller", is_active=False)
        response = self.client.get("/api/users/statistics/")
        self.assertEqual(response.status_code, 200)
        stats = response.data["data"]
        self.assertEqual(stats["total_users"], 2)
        self.assertEqual(stats["inactive_users"], 1)
        self.assertEqual(stats["by_role"], {"admin": 1, "seller": 1})

    def test_only_super_admin_manages_users(self):
        token = self.client.post("/api/login/", {"username": "admin", "password": "admin123"}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['data']['token']}")
        self.assertEqual(self.client.get("/api/users/").status_code, 403)
