from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APITestCase

from apps.customers.models import Customer, normalize_phone
from apps.sales.models import PaymentStatus, Sale

User = get_user_model()


class CustomerModelTests(TestCase):
    def test_normalize_phone_keeps_digits(self):
        self.assertEqual(normalize_phone("+213 (555) 12-34"), "2135551234")
        self.assertIsNone(Customer.objects.create(name="Walk-in").phone_normalized)

    def test_get_or_create_reuses_by_phone_without_renaming(self):
        first, created = Customer.get_or_create_by_phone("0555 12 34 56", name="Amine")
        again, created_again = Customer.get_or_create_by_phone("0555-123-456", name="Someone")

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, again.pk)
        self.assertEqual(again.name, "Amine")

    def test_blank_phone_always_creates(self):
        one, _ = Customer.get_or_create_by_phone("", name="A")
        two, _ = Customer.get_or_create_by_phone(None, name="B")
        self.assertNotEqual(one.pk, two.pk)
        self.assertEqual(Customer.objects.count(), 2)

    def test_formatted_phone(self):
        self.assertEqual(Customer(name="x", phone="0555123456", phone_normalized="0555123456").formatted_phone, "055-512-3456")


class CustomerApiTests(APITestCase):
    def setUp(self):
        User.objects.create_user(username="seller", password="seller123", role="seller")
        User.objects.create_user(username="tech", password="tech123", role="technician")
        User.objects.create_user(username="stock", password="stock123", role="inventory")

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def test_crud_and_duplicate_phone(self):
        self.auth_as("seller", "seller123")
        created = self.client.post(
            "/api/customers/", {"name": "Amine", "phone": "0555 12 34 56", "address": "Oran"}, format="json"
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.data["formatted_phone"], "055-512-3456")

        duplicate = self.client.post("/api/customers/", {"name": "Other", "phone": "0555123456"}, format="json")
        self.assertEqual(duplicate.status_code, 422)
        self.assertIn("phone", duplicate.data["errors"])

        customer_id = created.data["id"]
        updated = self.client.patch(f"/api/customers/{customer_id}/", {"address": "Alger"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["address"], "Alger")

        self.assertEqual(self.client.delete(f"/api/customers/{customer_id}/").status_code, 204)
        self.assertFalse(Customer.objects.exists())

    def test_detail_and_filters_carry_purchase_totals(self):
        buyer = Customer.objects.create(name="Amine", phone="0555123456")
        Customer.objects.create(name="Lina", phone="0666000000")
        for number, amount in (("SAL-1", "150.00"), ("SAL-2", "50.00")):
            Sale.objects.create(
                sale_number=number, customer=buyer, total_amount=Decimal(amount), payment_status=PaymentStatus.PAID
            )

        self.auth_as("seller", "seller123")
        detail = self.client.get(f"/api/customers/{buyer.id}/")
        self.assertEqual(detail.data["total_spent"], "200.00")
        self.assertEqual(detail.data["purchase_count"], 2)
        self.assertIsNotNone(detail.data["last_purchase_date"])

        self.assertEqual(self.client.get("/api/customers/?has_purchases=true").data["count"], 1)
        self.assertEqual(self.client.get("/api/customers/?search=lina").data["count"], 1)

    def test_read_only_and_no_access_roles(self):
        self.auth_as("tech", "tech123")
        self.assertEqual(self.client.get("/api/customers/").status_code, 200)
        self.assertEqual(self.client.post("/api/customers/", {"name": "X"}, format="json").status_code, 403)

        self.auth_as("stock", "stock123")
        self.assertEqual(self.client.get("/api/customers/").status_code, 403)
