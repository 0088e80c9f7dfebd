from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Brand, Product
from apps.common.exceptions import DuplicateImeiError
from apps.inventory import services
from apps.inventory.models import BuyPhone, PhoneStatus

User = get_user_model()


def make_phone(brand, **overrides):
    fields = {
        "seller_name": "Karim",
        "brand": brand,
        "model": "iPhone 11",
        "condition": "good",
        "buy_price": Decimal("100.00"),
        "resell_price": Decimal("130.00"),
        "status": PhoneStatus.RECEIVED,
    }
    fields.update(overrides)
    return BuyPhone.objects.create(**fields)


class LedgerServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="stock", password="stock123", role="inventory")
        self.brand = Brand.objects.create(name="Apple")

    def test_suggested_resell_price_uses_condition_multiplier(self):
        self.assertEqual(services.suggested_resell_price(Decimal("100"), "good"), Decimal("130.00"))
        self.assertEqual(services.suggested_resell_price(Decimal("99.99"), "excellent"), Decimal("149.99"))
        self.assertEqual(services.suggested_resell_price(Decimal("80"), "broken"), Decimal("80.00"))
        self.assertEqual(services.suggested_resell_price(Decimal("100"), "mint"), Decimal("130.00"))

    def test_create_phone_fills_defaults(self):
        phone = services.create_phone(
            self.user, seller_name="Karim", brand=self.brand, model="iPhone 11", condition="good", buy_price=Decimal("100")
        )
        self.assertEqual(phone.resell_price, Decimal("130.00"))
        self.assertEqual(phone.status, PhoneStatus.RECEIVED)
        self.assertEqual(phone.received_date, timezone.localdate())
        self.assertEqual(phone.received_by, self.user)
        self.assertIsNone(phone.sold_date)
        self.assertTrue(AuditLog.objects.filter(action="inventory.buy_phone.create", entity_id=str(phone.id)).exists())

    def test_duplicate_imei_is_rejected_and_null_imei_never_conflicts(self):
        make_phone(self.brand, imei="356938035643809")
        with self.assertRaises(DuplicateImeiError):
            services.create_phone(
                self.user, seller_name="A", brand=self.brand, model="X", buy_price=Decimal("10"), imei="356938035643809"
            )

        first = services.create_phone(self.user, seller_name="A", brand=self.brand, model="X", buy_price=Decimal("10"))
        second = services.create_phone(self.user, seller_name="B", brand=self.brand, model="Y", buy_price=Decimal("10"), imei="")
        self.assertIsNone(first.imei)
        self.assertIsNone(second.imei)

    def test_imei_in_product_catalog_counts_as_duplicate(self):
        Product.objects.create(
            brand=self.brand, model="iPhone 12", imei="111111111111111", purchase_price=1, selling_price=2
        )
        self.assertTrue(services.imei_exists("111111111111111"))

    def test_catalog_check_failure_is_tolerated(self):
        with mock.patch.object(Product.objects, "filter", side_effect=DatabaseError("boom")):
            with self.assertLogs("apps.inventory.services", level="WARNING"):
                self.assertFalse(services.imei_exists("222222222222222"))

    def test_soft_deleted_phone_still_holds_its_imei(self):
        phone = make_phone(self.brand, imei="333333333333333")
        services.soft_delete_phone(phone, self.user)
        self.assertFalse(BuyPhone.objects.filter(pk=phone.pk).exists())
        self.assertTrue(BuyPhone.all_objects.filter(pk=phone.pk).exists())
        self.assertTrue(services.imei_exists("333333333333333"))

    def test_sold_date_follows_status(self):
        phone = make_phone(self.brand)
        services.update_phone(phone, self.user, status=PhoneStatus.SOLD)
        phone.refresh_from_db()
        self.assertEqual(phone.sold_date, timezone.localdate())

        services.update_phone(phone, self.user, status=PhoneStatus.LISTED)
        phone.refresh_from_db()
        self.assertIsNone(phone.sold_date)

    def test_update_rechecks_imei_excluding_itself(self):
        phone = make_phone(self.brand, imei="444444444444444")
        make_phone(self.brand, imei="555555555555555", model="Other")

        services.update_phone(phone, self.user, imei="444444444444444", notes="same imei is fine")
        with self.assertRaises(DuplicateImeiError):
            services.update_phone(phone, self.user, imei="555555555555555")

    def test_mark_tested_joins_issues(self):
        phone = make_phone(self.brand)
        services.mark_tested(phone, self.user, issues=["scratched screen", "weak battery"])
        phone.refresh_from_db()
        self.assertEqual(phone.status, PhoneStatus.TESTED)
        self.assertEqual(phone.issues, "scratched screen, weak battery")

    def test_statistics_over_rolling_window(self):
        make_phone(self.brand, status=PhoneStatus.SOLD, sold_date=timezone.localdate(), resell_price=Decimal("150.00"))
        make_phone(self.brand, status=PhoneStatus.LISTED)
        make_phone(self.brand, status=PhoneStatus.RECEIVED)
        make_phone(self.brand, received_date=timezone.localdate() - timedelta(days=60), buy_price=Decimal("500.00"))

        month = services.statistics("month")
        self.assertEqual(month["total_phones"], 3)
        self.assertEqual(month["sold_phones"], 1)
        self.assertEqual(month["available_phones"], 1)
        self.assertEqual(month["needs_testing"], 1)
        self.assertEqual(month["total_investment"], Decimal("300.00"))
        self.assertEqual(month["total_revenue"], Decimal("150.00"))
        self.assertEqual(month["total_profit"], Decimal("-150.00"))
        self.assertAlmostEqual(month["sell_through_rate"], 33.33)

        self.assertEqual(services.statistics("all")["total_phones"], 4)


class BuyPhoneApiTests(APITestCase):
    def setUp(self):
        self.manager = User.objects.create_user(username="stock", password="stock123", role="inventory")
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller")
        self.brand = Brand.objects.create(name="Samsung")

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def test_create_phone_suggests_resell_price(self):
        self.auth_as("stock", "stock123")
        response = self.client.post(
            "/api/buy-phones/",
            {
                "seller_name": "Yacine",
                "brand_id": str(self.brand.id),
                "model": "Galaxy S20",
                "imei": "356938035643809",
                "condition": "good",
                "buy_price": "100.00",
            },
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        data = response.data["data"]
        self.assertEqual(data["resell_price"], "130.00")
        self.assertEqual(data["status"], "received")
        self.assertEqual(data["potential_profit"], "30.00")
        self.assertTrue(data["needs_testing"])
        self.assertEqual(response.json()["message"], "Phone bought and added successfully")

    def test_duplicate_imei_returns_422(self):
        make_phone(self.brand, imei="356938035643809")
        self.auth_as("stock", "stock123")
        response = self.client.post(
            "/api/buy-phones/",
            {"seller_name": "A", "brand_id": str(self.brand.id), "model": "X", "imei": "356938035643809", "buy_price": "5"},
            format="json",
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data["message"], "IMEI already exists in inventory")
        self.assertIn("imei", response.data["errors"])

    def test_imei_must_be_fifteen_digits(self):
        self.auth_as("stock", "stock123")
        payload = {"seller_name": "A", "brand_id": str(self.brand.id), "model": "X", "buy_price": "5"}

        lettered = self.client.post("/api/buy-phones/", {**payload, "imei": "35693803564380X"}, format="json")
        self.assertEqual(lettered.status_code, 422)
        self.assertEqual(lettered.data["errors"]["imei"], ["The imei must be 15 digits."])

        digits = self.client.post("/api/buy-phones/", {**payload, "imei": "356938035643809"}, format="json")
        self.assertEqual(digits.status_code, 201)

    def test_validation_errors_are_field_level(self):
        self.auth_as("stock", "stock123")
        response = self.client.post(
            "/api/buy-phones/",
            {"brand_id": str(self.brand.id), "imei": "123", "buy_price": "-1"},
            format="json",
        )
        self.assertEqual(response.status_code, 422)
        self.assertFalse(response.data["success"])
        for field in ("seller_name", "model", "buy_price"):
            self.assertIn(field, response.data["errors"])

    def test_list_excludes_sold_unless_requested(self):
        make_phone(self.brand, model="Listed", status=PhoneStatus.LISTED)
        make_phone(self.brand, model="Received")
        make_phone(self.brand, model="Sold", status=PhoneStatus.SOLD, sold_date=timezone.localdate())
        self.auth_as("seller", "seller123")

        default = self.client.get("/api/buy-phones/")
        self.assertEqual(default.status_code, 200)
        self.assertEqual({row["model"] for row in default.data["results"]}, {"Listed", "Received"})

        sold = self.client.get("/api/buy-phones/?status=sold")
        self.assertEqual([row["model"] for row in sold.data["results"]], ["Sold"])

        available = self.client.get("/api/buy-phones/?status=available")
        self.assertEqual([row["model"] for row in available.data["results"]], ["Listed"])

        testing = self.client.get("/api/buy-phones/?status=needs_testing")
        self.assertEqual([row["model"] for row in testing.data["results"]], ["Received"])

    def test_list_search_and_date_range(self):
        today = timezone.localdate()
        make_phone(self.brand, model="Galaxy A52", seller_phone="0555123456")
        make_phone(self.brand, model="Note 10", received_date=today - timedelta(days=10))
        self.auth_as("seller", "seller123")

        by_phone = self.client.get("/api/buy-phones/?search=0555")
        self.assertEqual([row["model"] for row in by_phone.data["results"]], ["Galaxy A52"])

        by_brand = self.client.get("/api/buy-phones/?search=samsung")
        self.assertEqual(by_brand.data["count"], 2)

        start = (today - timedelta(days=10)).isoformat()
        single_day = self.client.get(f"/api/buy-phones/?start_date={start}")
        self.assertEqual([row["model"] for row in single_day.data["results"]], ["Note 10"])

    def test_malformed_list_filters_return_422(self):
        make_phone(self.brand)
        self.auth_as("seller", "seller123")

        bad_date = self.client.get("/api/buy-phones/?start_date=notadate")
        self.assertEqual(bad_date.status_code, 422)
        self.assertFalse(bad_date.data["success"])
        self.assertIn("start_date", bad_date.data["errors"])

        bad_brand = self.client.get("/api/buy-phones/?brand_id=12")
        self.assertEqual(bad_brand.status_code, 422)
        self.assertIn("brand_id", bad_brand.data["errors"])

        today = timezone.localdate()
        backwards = self.client.get(f"/api/buy-phones/?start_date={today}&end_date={today - timedelta(days=1)}")
        self.assertEqual(backwards.status_code, 422)
        self.assertIn("end_date", backwards.data["errors"])

        export = self.client.get("/api/buy-phones/export/?end_date=31-12-2024&start_date=2024-01-01")
        self.assertEqual(export.status_code, 422)
        self.assertIn("end_date", export.data["errors"])

        blank = self.client.get("/api/buy-phones/?start_date=&brand_id=")
        self.assertEqual(blank.status_code, 200)
        self.assertEqual(blank.data["count"], 1)

    def test_selling_an_already_sold_phone_is_rejected_and_leaves_it_unchanged(self):
        phone = make_phone(self.brand, status=PhoneStatus.LISTED)
        self.auth_as("stock", "stock123")

        first = self.client.post(f"/api/buy-phones/{phone.id}/sell/", {"sold_price": "175.00"}, format="json")
        self.assertEqual(first.status_code, 200)
        phone.refresh_from_db()
        self.assertEqual(phone.status, PhoneStatus.SOLD)
        self.assertEqual(phone.resell_price, Decimal("175.00"))
        sold_snapshot = (phone.status, phone.sold_date, phone.resell_price, phone.updated_at)

        second = self.client.post(f"/api/buy-phones/{phone.id}/sell/", {"sold_price": "10.00"}, format="json")
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.data["message"], "Phone already sold")
        phone.refresh_from_db()
        self.assertEqual((phone.status, phone.sold_date, phone.resell_price, phone.updated_at), sold_snapshot)

    def test_status_shortcuts(self):
        phone = make_phone(self.brand)
        self.auth_as("stock", "stock123")

        tested = self.client.post(f"/api/buy-phones/{phone.id}/mark-tested/", {"issues": ["dead pixel"]}, format="json")
        self.assertEqual(tested.data["data"]["status"], "tested")
        self.assertEqual(tested.data["data"]["issues"], "dead pixel")

        listed = self.client.post(f"/api/buy-phones/{phone.id}/mark-listed/")
        self.assertTrue(listed.data["data"]["is_available"])

        sold = self.client.post(f"/api/buy-phones/{phone.id}/mark-sold/")
        self.assertEqual(sold.data["data"]["sold_date"], timezone.localdate().isoformat())

        returned = self.client.post(f"/api/buy-phones/{phone.id}/mark-returned/")
        self.assertEqual(returned.data["data"]["status"], "returned")
        self.assertIsNone(returned.data["data"]["sold_date"])

    def test_delete_is_soft(self):
        phone = make_phone(self.brand)
        self.auth_as("stock", "stock123")
        response = self.client.delete(f"/api/buy-phones/{phone.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/api/buy-phones/{phone.id}/").status_code, 404)
        self.assertIsNotNone(BuyPhone.all_objects.get(pk=phone.pk).deleted_at)

    def test_seller_cannot_modify_ledger(self):
        phone = make_phone(self.brand)
        self.auth_as("seller", "seller123")
        self.assertEqual(self.client.get(f"/api/buy-phones/{phone.id}/").status_code, 200)
        self.assertEqual(self.client.post(f"/api/buy-phones/{phone.id}/mark-listed/").status_code, 403)

    def test_stats_endpoint(self):
        make_phone(self.brand, status=PhoneStatus.LISTED)
        self.auth_as("seller", "seller123")
        response = self.client.get("/api/buy-phones-stats/?period=year")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["data"]["total_phones"], 1)
        self.assertEqual(response.data["data"]["available_phones"], 1)

    def test_export_csv(self):
        make_phone(self.brand, model="Galaxy S9", imei="356938035643809")
        self.auth_as("stock", "stock123")
        response = self.client.get("/api/buy-phones/export/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        lines = response.content.decode().strip().splitlines()
        self.assertTrue(lines[0].startswith("ID,Brand,Model"))
        self.assertIn("Galaxy S9", lines[1])
        self.assertIn("356938035643809", lines[1])
