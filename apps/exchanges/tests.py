from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Brand
from apps.customers.models import Customer
from apps.exchanges.models import Exchange, ExchangeStatus
from apps.inventory.models import BuyPhone, PhoneStatus
from apps.sales.models import PaymentMethod, PaymentStatus, Sale

User = get_user_model()


class ExchangeWorkflowTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin", name="Nadia")
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller")
        self.brand = Brand.objects.create(name="Samsung")
        self.stock_phone = BuyPhone.objects.create(
            seller_name="Walid",
            brand=self.brand,
            model="Galaxy S21",
            imei="490154203237518",
            condition="excellent",
            buy_price=Decimal("150.00"),
            resell_price=Decimal("200.00"),
            status=PhoneStatus.LISTED,
        )

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def exchange(self, received=None, sold=None, **overrides):
        payload = {
            "customer_name": "Yacine",
            "customer_phone": "0770 11 22 33",
            "received": {
                "brand_id": str(self.brand.id),
                "model": "Galaxy A50",
                "imei": "353918056245127",
                "condition": "fair",
                "buy_price": "80.00",
                **(received or {}),
            },
            "sold": {"buy_phone_id": str(self.stock_phone.id), "price": "200.00", **(sold or {})},
        }
        payload.update(overrides)
        return self.client.post("/api/exchanges/", payload, format="json")

    def test_exchange_records_trade_in_sale_and_difference(self):
        self.auth_as("admin", "admin123")
        response = self.exchange()

        self.assertEqual(response.status_code, 201)
        data = response.data["data"]
        self.assertEqual(data["difference_amount"], "120.00")
        self.assertEqual(data["formatted_difference"], "+120.00")
        self.assertTrue(data["customer_pays"])
        self.assertEqual(data["status"], ExchangeStatus.COMPLETED)

        exchange = Exchange.objects.get(pk=data["id"])
        received = exchange.buy_phone
        self.assertEqual(received.status, PhoneStatus.RECEIVED)
        self.assertEqual(received.seller_name, "Yacine")
        self.assertEqual(received.resell_price, Decimal("80.00"))

        sale = exchange.sale
        self.assertEqual(sale.payment_method, PaymentMethod.EXCHANGE)
        self.assertEqual(sale.payment_status, PaymentStatus.PAID)
        self.assertEqual(sale.total_amount, Decimal("200.00"))
        self.assertEqual(sale.paid_amount, Decimal("120.00"))
        self.assertEqual(sale.buy_phone, self.stock_phone)

        self.stock_phone.refresh_from_db()
        self.assertEqual(self.stock_phone.status, PhoneStatus.SOLD)
        self.assertEqual(self.stock_phone.sold_to, exchange.customer)
        self.assertTrue(AuditLog.objects.filter(action="exchanges.exchange.create").exists())

    def test_downgrade_means_shop_pays(self):
        self.auth_as("admin", "admin123")
        response = self.exchange(received={"buy_price": "220.00"})

        self.assertEqual(response.status_code, 201)
        exchange = Exchange.objects.get()
        self.assertTrue(exchange.shop_pays)
        self.assertEqual(exchange.formatted_difference, "-20.00")
        self.assertEqual(exchange.sale.paid_amount, Decimal("0.00"))

    def test_duplicate_trade_in_imei_rolls_everything_back(self):
        self.auth_as("admin", "admin123")
        response = self.exchange(received={"imei": self.stock_phone.imei})

        self.assertEqual(response.status_code, 422)
        self.assertIn("imei", response.data["errors"])
        self.assertEqual(Customer.objects.count(), 0)
        self.assertEqual(Sale.objects.count(), 0)
        self.assertEqual(BuyPhone.objects.count(), 1)

    def test_trade_in_requires_imei(self):
        self.auth_as("admin", "admin123")
        response = self.exchange(received={"imei": ""})
        self.assertEqual(response.status_code, 422)
        self.assertIn("received", response.data["errors"])

    def test_sold_phone_must_be_in_stock(self):
        self.stock_phone.status = PhoneStatus.SOLD
        self.stock_phone.save()
        self.auth_as("admin", "admin123")

        response = self.exchange()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(Exchange.objects.count(), 0)
        self.assertEqual(BuyPhone.objects.count(), 1)

    def test_status_flips_and_delete(self):
        self.auth_as("admin", "admin123")
        exchange_id = self.exchange().data["data"]["id"]

        cancelled = self.client.post(f"/api/exchanges/{exchange_id}/cancel/")
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(cancelled.data["data"]["status"], ExchangeStatus.CANCELLED)
        self.stock_phone.refresh_from_db()
        self.assertEqual(self.stock_phone.status, PhoneStatus.SOLD)

        completed = self.client.post(f"/api/exchanges/{exchange_id}/complete/")
        self.assertEqual(completed.data["data"]["status"], ExchangeStatus.COMPLETED)

        sale = Exchange.objects.get().sale
        blocked = self.client.delete(f"/api/sales/{sale.id}/")
        self.assertEqual(blocked.status_code, 400)

        deleted = self.client.delete(f"/api/exchanges/{exchange_id}/")
        self.assertEqual(deleted.status_code, 200)
        self.assertFalse(Exchange.objects.exists())

    def test_list_search_and_statistics(self):
        self.auth_as("admin", "admin123")
        self.exchange()

        listed = self.client.get("/api/exchanges/?search=yacine")
        self.assertEqual(listed.data["count"], 1)
        self.assertEqual(self.client.get("/api/exchanges/?status=pending").data["count"], 0)

        stats = self.client.get("/api/exchanges-stats/?period=all")
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.data["data"]["total_exchanges"], 1)
        self.assertEqual(stats.data["data"]["financial"]["total_customer_payments"], "120.00")
        self.assertEqual(stats.data["data"]["financial"]["net_balance"], "120.00")

    def test_seller_cannot_exchange(self):
        self.auth_as("seller", "seller123")
        self.assertEqual(self.exchange().status_code, 403)
