from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.catalog.models import Brand
from apps.customers.models import Customer
from apps.exchanges.models import Exchange, ExchangeStatus
from apps.inventory.models import BuyPhone, PhoneStatus
from apps.reports.services import dashboard_statistics, percent_change
from apps.sales.models import PaymentStatus, Sale

User = get_user_model()


class ReportsTests(APITestCase):
    def setUp(self):
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller", name="Sami")
        User.objects.create_user(username="tech", password="tech123", role="technician")
        self.brand = Brand.objects.create(name="Apple")
        self.customer = Customer.objects.create(name="Amine", phone="0555123456")
        self.sequence = 0

    def phone(self, model="iPhone 12", buy_price="100.00", **extra):
        self.sequence += 1
        return BuyPhone.objects.create(
            seller_name="Karim",
            brand=self.brand,
            model=model,
            imei=f"35693803564{self.sequence:04d}",
            condition="good",
            buy_price=Decimal(buy_price),
            received_by=self.seller,
            **extra,
        )

    def sale(self, total, discount="0.00", days_ago=0, status=PaymentStatus.PAID, phone=None):
        self.sequence += 1
        sale = Sale.objects.create(
            sale_number=f"SAL-TEST-{self.sequence:04d}",
            customer=self.customer,
            buy_phone=phone,
            total_amount=Decimal(total),
            discount_amount=Decimal(discount),
            payment_status=status,
            created_by=self.seller,
        )
        if days_ago:
            Sale.objects.filter(pk=sale.pk).update(created_at=timezone.now() - timedelta(days=days_ago))
        return sale

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def test_percent_change_edges(self):
        self.assertEqual(percent_change(Decimal("150"), Decimal("100")), 50.0)
        self.assertEqual(percent_change(Decimal("50"), Decimal("0")), 100)
        self.assertEqual(percent_change(Decimal("0"), Decimal("0")), 0)
        self.assertEqual(percent_change(Decimal("100"), Decimal("300")), -66.7)

    def test_dashboard_statistics(self):
        self.sale("200.00", discount="20.00", phone=self.phone(buy_price="120.00"))
        self.sale("50.00", status=PaymentStatus.PENDING)
        self.sale("90.00", days_ago=1)
        self.sale("400.00", days_ago=10)

        stats = dashboard_statistics()
        self.assertEqual(stats["today_sales"]["amount"], "180.00")
        self.assertEqual(stats["today_sales"]["change_percent"], 100.0)
        self.assertEqual(stats["total_profit"]["amount"], "60.00")
        self.assertEqual(stats["weekly_sales"]["amount"], "270.00")
        self.assertEqual(stats["weekly_sales"]["change_percent"], -32.5)
        self.assertEqual(len(stats["recent_transactions"]), 4)
        self.assertEqual(stats["recent_transactions"][0]["title"], "Sale: Phone")

    def test_dashboard_endpoint_requires_capability(self):
        self.auth_as("seller", "seller123")
        response = self.client.get("/api/dashboard/statistics/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["today_sales"]["amount"], "0.00")
        self.assertEqual(response.data["data"]["today_sales"]["change_percent"], 0)

        self.auth_as("tech", "tech123")
        self.assertEqual(self.client.get("/api/dashboard/statistics/").status_code, 403)

    def test_history_merges_and_sorts_events(self):
        added = self.phone(model="iPhone 13", buy_price="300.00")
        BuyPhone.objects.filter(pk=added.pk).update(created_at=timezone.now() - timedelta(days=3))
        sold = self.phone(model="iPhone 14", status=PhoneStatus.SOLD)
        BuyPhone.objects.filter(pk=sold.pk).update(created_at=timezone.now() - timedelta(days=2))
        sale = self.sale("250.00", phone=sold, days_ago=1)
        received = self.phone(model="iPhone X", buy_price="80.00")
        Exchange.objects.create(
            sale=sale,
            buy_phone=received,
            customer=self.customer,
            difference_amount=Decimal("170.00"),
            status=ExchangeStatus.COMPLETED,
            processed_by=self.seller,
        )

        self.auth_as("seller", "seller123")
        response = self.client.get("/api/history/")
        self.assertEqual(response.status_code, 200)
        feed = response.data["data"]

        self.assertEqual(len(feed), 5)
        self.assertEqual([entry["created_at"] for entry in feed], sorted((e["created_at"] for e in feed), reverse=True))
        self.assertEqual({entry["type"] for entry in feed}, {"sale", "add", "exchange"})
        self.assertEqual(feed[-1]["title"], "Apple iPhone 13")

        sale_entry = next(entry for entry in feed if entry["type"] == "sale")
        self.assertEqual(sale_entry["title"], "iPhone 14")
        self.assertEqual(
            sale_entry["subtitle"],
            f"To Amine • IMEI: {sold.imei} • By: Sami • price: 250.00DA",
        )
        exchange_entry = next(entry for entry in feed if entry["type"] == "exchange")
        self.assertIn("+170.00", exchange_entry["subtitle"])

        limited = self.client.get("/api/history/?limit=2")
        self.assertEqual(len(limited.data["data"]), 2)
