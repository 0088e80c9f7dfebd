from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.catalog.models import Brand, Product
from apps.purchases.models import Purchase, PurchaseItem, PurchaseStatus
from apps.suppliers.models import Supplier

User = get_user_model()


class PurchaseApiTests(APITestCase):
    def setUp(self):
        self.stock_manager = User.objects.create_user(username="stock", password="stock123", role="inventory")
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller")
        token = self.client.post("/api/login/", {"username": "stock", "password": "stock123"}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['data']['token']}")

        self.supplier = Supplier.objects.create(name="Global Phones", phone="021 55 66 77")
        brand = Brand.objects.create(name="Xiaomi")
        self.product = Product.objects.create(
            brand=brand,
            model="Redmi Note 12",
            purchase_price=Decimal("90.00"),
            selling_price=Decimal("120.00"),
            quantity=1,
        )

    def create(self, **overrides):
        payload = {
            "supplier_id": str(self.supplier.id),
            "tax_rate": "10.00",
            "shipping_cost": "5.00",
            "paid_amount": "100.00",
            "items": [{"product_id": str(self.product.id), "quantity": 3, "unit_price": "50.00"}],
        }
        payload.update(overrides)
        return self.client.post("/api/purchases/", payload, format="json")

    def test_create_completed_purchase_adds_stock_and_totals(self):
        response = self.create()

        self.assertEqual(response.status_code, 201)
        data = response.data["data"]
        today = timezone.localdate()
        self.assertTrue(data["invoice_number"].startswith(f"PUR-{today:%Y%m%d}-"))
        self.assertEqual(data["status"], PurchaseStatus.COMPLETED)
        self.assertEqual(data["total_amount"], "150.00")
        self.assertEqual(data["tax_amount"], "15.00")
        self.assertEqual(data["grand_total"], "170.00")
        self.assertEqual(data["balance"], "70.00")
        self.assertEqual(data["due_date"], (today + timedelta(days=30)).isoformat())

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)

    def test_pending_purchase_adds_stock_once_on_complete(self):
        purchase_id = self.create(status="pending").data["data"]["id"]
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 1)

        self.assertEqual(self.client.post(f"/api/purchases/{purchase_id}/complete/").status_code, 200)
        self.assertEqual(self.client.post(f"/api/purchases/{purchase_id}/complete/").status_code, 200)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)

    def test_cancel_removes_stock_and_blocks_second_cancel(self):
        purchase_id = self.create().data["data"]["id"]

        response = self.client.post(f"/api/purchases/{purchase_id}/cancel/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["status"], PurchaseStatus.CANCELLED)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 1)

        self.assertEqual(self.client.post(f"/api/purchases/{purchase_id}/cancel/").status_code, 400)
        self.assertEqual(self.client.post(f"/api/purchases/{purchase_id}/complete/").status_code, 400)

    def test_cancel_fails_when_stock_was_sold(self):
        purchase_id = self.create().data["data"]["id"]
        Product.objects.filter(pk=self.product.pk).update(quantity=2)

        response = self.client.post(f"/api/purchases/{purchase_id}/cancel/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Purchase.objects.get().status, PurchaseStatus.COMPLETED)

    def test_cancel_checks_stock_per_product_across_lines(self):
        line = {"product_id": str(self.product.id), "quantity": 3, "unit_price": "50.00"}
        purchase_id = self.create(items=[line, line]).data["data"]["id"]
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 7)
        Product.objects.filter(pk=self.product.pk).update(quantity=4)

        response = self.client.post(f"/api/purchases/{purchase_id}/cancel/")
        self.assertEqual(response.status_code, 400)
        self.assertIn("product_id", response.data["errors"])
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)
        self.assertEqual(Purchase.objects.get().status, PurchaseStatus.COMPLETED)

        Product.objects.filter(pk=self.product.pk).update(quantity=6)
        self.assertEqual(self.client.post(f"/api/purchases/{purchase_id}/cancel/").status_code, 200)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 0)

    def test_delete_reverts_stock(self):
        purchase_id = self.create().data["data"]["id"]
        response = self.client.delete(f"/api/purchases/{purchase_id}/")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Purchase.objects.exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 1)

    def test_items_are_validated(self):
        empty = self.create(items=[])
        self.assertEqual(empty.status_code, 422)
        self.assertIn("items", empty.data["errors"])

        bad = self.create(items=[{"product_id": str(self.product.id), "quantity": 0, "unit_price": "-1"}])
        self.assertEqual(bad.status_code, 422)
        self.assertFalse(Purchase.objects.exists())

    def test_duplicate_invoice_number_is_rejected(self):
        self.assertEqual(self.create(invoice_number="INV-77").status_code, 201)
        response = self.create(invoice_number="INV-77")
        self.assertEqual(response.status_code, 422)
        self.assertIn("invoice_number", response.data["errors"])

    def test_list_filters_and_export(self):
        self.create()
        self.create(status="pending")

        self.assertEqual(self.client.get("/api/purchases/").data["count"], 2)
        self.assertEqual(self.client.get("/api/purchases/?status=pending").data["count"], 1)
        self.assertEqual(self.client.get("/api/purchases/?search=global").data["count"], 2)

        export = self.client.get("/api/purchases/export/")
        self.assertEqual(export.status_code, 200)
        self.assertEqual(export["Content-Type"], "text/csv")
        lines = export.content.decode().strip().splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("Invoice,Supplier"))

    def test_malformed_list_filters_return_422(self):
        self.create()

        bad_date = self.client.get("/api/purchases/?start_date=notadate")
        self.assertEqual(bad_date.status_code, 422)
        self.assertIn("start_date", bad_date.data["errors"])

        bad_supplier = self.client.get("/api/purchases/?supplier_id=7")
        self.assertEqual(bad_supplier.status_code, 422)
        self.assertIn("supplier_id", bad_supplier.data["errors"])

        bad_export = self.client.get("/api/purchases/export/?start_date=2024-13-01")
        self.assertEqual(bad_export.status_code, 422)

        today = timezone.localdate()
        in_range = self.client.get(f"/api/purchases/?start_date={today}&end_date={today}&supplier_id={self.supplier.id}")
        self.assertEqual(in_range.status_code, 200)
        self.assertEqual(in_range.data["count"], 1)

    def test_item_quantity_must_be_positive_in_the_database(self):
        purchase = Purchase.objects.create(supplier=self.supplier, invoice_number="INV-ZERO")

        with self.assertRaises(IntegrityError), transaction.atomic():
            PurchaseItem.objects.create(purchase=purchase, product=self.product, quantity=0, unit_price=Decimal("1.00"))
        self.assertFalse(purchase.items.exists())

    def test_seller_has_no_access(self):
        self.client.credentials()
        token = self.client.post("/api/login/", {"username": "seller", "password": "seller123"}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['data']['token']}")
        self.assertEqual(self.client.get("/api/purchases/").status_code, 403)
