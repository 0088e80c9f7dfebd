import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Brand
from apps.customers.models import Customer
from apps.inventory.models import BuyPhone, PhoneStatus
from apps.sales.models import PaymentStatus, Sale

User = get_user_model()


class SaleWorkflowTests(APITestCase):
    def setUp(self):
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller", name="Sami")
        self.technician = User.objects.create_user(username="tech", password="tech123", role="technician")
        self.brand = Brand.objects.create(name="Apple")
        self.phone = BuyPhone.objects.create(
            seller_name="Karim",
            brand=self.brand,
            model="iPhone 11",
            storage="64GB",
            color="Black",
            imei="356938035643809",
            condition="good",
            buy_price=Decimal("100.00"),
            resell_price=Decimal("130.00"),
            status=PhoneStatus.LISTED,
        )

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def sell(self, **overrides):
        payload = {
            "buyer_name": "Amine",
            "buyer_phone": "0555 12 34 56",
            "buyer_address": "Oran",
            "buy_phone_id": str(self.phone.id),
            "total_amount": "150.00",
            "discount_amount": "10.00",
        }
        payload.update(overrides)
        return self.client.post("/api/sales/", payload, format="json")

    def test_sale_returns_receipt_and_flips_phone(self):
        self.auth_as("seller", "seller123")
        response = self.sell()

        self.assertEqual(response.status_code, 201)
        receipt = response.data["data"]
        self.assertEqual(receipt["price"], "150.00")
        self.assertEqual(receipt["discount"], "10.00")
        self.assertEqual(receipt["total"], "140.00")
        self.assertEqual(receipt["model"], "iPhone 11")
        self.assertEqual(receipt["imei"], "356938035643809")
        self.assertEqual(receipt["buyer_name"], "Amine")
        self.assertTrue(receipt["sale_number"].startswith(f"SAL-{timezone.localdate():%Y%m%d}-"))
        self.assertEqual(response.json()["data"]["total"], "140.00")

        sale = Sale.objects.get(pk=receipt["id"])
        self.assertEqual(sale.payment_status, PaymentStatus.PAID)
        self.assertEqual(sale.created_by, self.seller)
        self.assertEqual(sale.items.count(), 1)
        self.assertEqual(sale.items.get().total_price, Decimal("150.00"))

        self.phone.refresh_from_db()
        self.assertEqual(self.phone.status, PhoneStatus.SOLD)
        self.assertEqual(self.phone.sold_date, timezone.localdate())
        self.assertEqual(self.phone.sold_to, sale.customer)
        self.assertTrue(AuditLog.objects.filter(action="sales.sale.create", entity_id=str(sale.id)).exists())

    def test_existing_customer_is_reused_without_renaming(self):
        existing = Customer.objects.create(name="Amine B.", phone="0555123456")
        self.auth_as("seller", "seller123")
        response = self.sell(buyer_name="Someone Else")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Customer.objects.count(), 1)
        self.assertEqual(response.data["data"]["buyer_name"], "Amine B.")
        self.assertEqual(Sale.objects.get().customer, existing)

    def test_missing_phone_rolls_back_customer_and_sale(self):
        self.auth_as("seller", "seller123")
        response = self.sell(buy_phone_id=str(uuid.uuid4()))

        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.data["success"])
        self.assertEqual(Customer.objects.count(), 0)
        self.assertEqual(Sale.objects.count(), 0)

    def test_phone_cannot_be_sold_twice(self):
        self.auth_as("seller", "seller123")
        self.assertEqual(self.sell().status_code, 201)

        again = self.sell(buyer_phone="0666000000", buyer_name="Other")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(Sale.objects.count(), 1)
        self.assertFalse(Customer.objects.filter(phone="0666000000").exists())

    def test_validation_failure_is_422(self):
        self.auth_as("seller", "seller123")
        response = self.client.post("/api/sales/", {"total_amount": "-5"}, format="json")
        self.assertEqual(response.status_code, 422)
        for field in ("buyer_name", "buy_phone_id", "total_amount"):
            self.assertIn(field, response.data["errors"])

    def test_delete_restores_phone_to_listed(self):
        self.auth_as("seller", "seller123")
        sale_id = self.sell().data["data"]["id"]

        response = self.client.delete(f"/api/sales/{sale_id}/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Sale.objects.filter(pk=sale_id).exists())

        self.phone.refresh_from_db()
        self.assertEqual(self.phone.status, PhoneStatus.LISTED)
        self.assertIsNone(self.phone.sold_date)
        self.assertIsNone(self.phone.sold_to)

    def test_list_filters(self):
        self.auth_as("seller", "seller123")
        self.sell()

        listed = self.client.get("/api/sales/?search=iphone")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 1)
        self.assertEqual(listed.data["results"][0]["grand_total"], "140.00")

        today = timezone.localdate().isoformat()
        self.assertEqual(self.client.get(f"/api/sales/?start_date={today}").data["count"], 1)
        self.assertEqual(self.client.get("/api/sales/?payment_status=pending").data["count"], 0)

    def test_malformed_list_filters_return_422(self):
        self.auth_as("seller", "seller123")
        self.sell()

        bad_start = self.client.get("/api/sales/?start_date=yesterday")
        self.assertEqual(bad_start.status_code, 422)
        self.assertIn("start_date", bad_start.data["errors"])

        today = timezone.localdate().isoformat()
        bad_end = self.client.get(f"/api/sales/?start_date={today}&end_date=2024-02-30")
        self.assertEqual(bad_end.status_code, 422)
        self.assertIn("end_date", bad_end.data["errors"])

        unknown_status = self.client.get("/api/sales/?payment_status=refunded")
        self.assertEqual(unknown_status.status_code, 422)
        self.assertIn("payment_status", unknown_status.data["errors"])

        blank = self.client.get("/api/sales/?start_date=&end_date=")
        self.assertEqual(blank.data["count"], 1)

    def test_technician_cannot_sell(self):
        self.auth_as("tech", "tech123")
        self.assertEqual(self.sell().status_code, 403)
        self.assertEqual(self.client.get("/api/sales/").status_code, 403)
