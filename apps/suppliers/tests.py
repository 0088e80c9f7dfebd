from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.purchases.models import Purchase
from apps.suppliers.models import Supplier

User = get_user_model()


class SupplierApiTests(APITestCase):
    def setUp(self):
        User.objects.create_user(username="stock", password="stock123", role="inventory")
        User.objects.create_user(username="tech", password="tech123", role="technician")

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def test_crud_and_search(self):
        self.auth_as("stock", "stock123")
        created = self.client.post(
            "/api/suppliers/",
            {"name": "  Tech Import ", "phone": "0550 00 11 22", "contact_person": "Rachid", "email": "sales@tech.dz"},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        supplier_id = created.data["id"]
        self.assertEqual(created.data["name"], "Tech Import")
        self.assertTrue(AuditLog.objects.filter(action="suppliers.supplier.create").exists())

        Supplier.objects.create(name="Other Wholesale")
        self.assertEqual(self.client.get("/api/suppliers/?search=rachid").data["count"], 1)
        self.assertEqual(self.client.get("/api/suppliers/").data["count"], 2)

        updated = self.client.patch(f"/api/suppliers/{supplier_id}/", {"notes": "Pays on delivery"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["notes"], "Pays on delivery")

        self.assertEqual(self.client.delete(f"/api/suppliers/{supplier_id}/").status_code, 204)
        self.assertFalse(Supplier.objects.filter(pk=supplier_id).exists())

    def test_detail_carries_purchase_totals(self):
        supplier = Supplier.objects.create(name="Tech Import")
        Purchase.objects.create(supplier=supplier, invoice_number="INV-1", total_amount=Decimal("300.00"))
        Purchase.objects.create(supplier=supplier, invoice_number="INV-2", total_amount=Decimal("200.00"))
        self.auth_as("stock", "stock123")

        detail = self.client.get(f"/api/suppliers/{supplier.id}/")
        self.assertEqual(detail.data["purchase_count"], 2)
        self.assertEqual(detail.data["total_purchases"], "500.00")

    def test_name_is_required(self):
        self.auth_as("stock", "stock123")
        response = self.client.post("/api/suppliers/", {"name": "   "}, format="json")
        self.assertEqual(response.status_code, 422)
        self.assertIn("name", response.data["errors"])

    def test_technician_has_no_access(self):
        self.auth_as("tech", "tech123")
        self.assertEqual(self.client.get("/api/suppliers/").status_code, 403)
