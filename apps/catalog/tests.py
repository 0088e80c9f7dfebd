from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Brand, Product

User = get_user_model()


class CatalogApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.seller = User.objects.create_user(username="seller", password="seller123", role="seller")
        self.apple = Brand.objects.create(name="Apple")
        self.samsung = Brand.objects.create(name="Samsung")

    def auth_as(self, username, password):
        response = self.client.post("/api/login/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['data']['token']}")

    def test_product_create_update_delete_are_audited(self):
        self.auth_as("admin", "admin123")
        created = self.client.post(
            "/api/products/",
            {
                "brand": str(self.apple.id),
                "model": "iPhone 12",
                "storage": "128GB",
                "imei": "356938035643809",
                "purchase_price": "300.00",
                "selling_price": "420.00",
                "quantity": 2,
            },
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        product_id = created.data["id"]
        self.assertEqual(created.data["brand_name"], "Apple")

        updated = self.client.patch(f"/api/products/{product_id}/", {"selling_price": "450.00"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["selling_price"], "450.00")

        deleted = self.client.delete(f"/api/products/{product_id}/")
        self.assertEqual(deleted.status_code, 204)

        for action in ("create", "update", "delete"):
            self.assertTrue(AuditLog.objects.filter(action=f"catalog.product.{action}", entity_id=product_id).exists())

    def test_product_imei_must_be_fifteen_digits_and_unique(self):
        self.auth_as("admin", "admin123")
        Product.objects.create(
            brand=self.apple,
            model="iPhone 11",
            imei="111111111111111",
            purchase_price=Decimal("200.00"),
            selling_price=Decimal("260.00"),
        )
        payload = {"brand": str(self.apple.id), "model": "iPhone 11", "purchase_price": "1", "selling_price": "2"}

        short = self.client.post("/api/products/", {**payload, "imei": "123"}, format="json")
        self.assertEqual(short.status_code, 422)
        self.assertIn("imei", short.data["errors"])

        lettered = self.client.post("/api/products/", {**payload, "imei": "35693803564380A"}, format="json")
        self.assertEqual(lettered.status_code, 422)
        self.assertIn("imei", lettered.data["errors"])

        duplicate = self.client.post("/api/products/", {**payload, "imei": "111111111111111"}, format="json")
        self.assertEqual(duplicate.status_code, 422)

        blank = self.client.post("/api/products/", {**payload, "imei": ""}, format="json")
        self.assertEqual(blank.status_code, 201)
        self.assertIsNone(blank.data["imei"])

    def test_products_filter_by_brand_and_search(self):
        self.auth_as("seller", "seller123")
        Product.objects.create(brand=self.apple, model="iPhone 13", purchase_price=1, selling_price=2)
        Product.objects.create(brand=self.samsung, model="Galaxy S21", purchase_price=1, selling_price=2)

        by_brand = self.client.get(f"/api/products/?brand_id={self.samsung.id}")
        self.assertEqual(by_brand.status_code, 200)
        self.assertEqual([row["model"] for row in by_brand.data["results"]], ["Galaxy S21"])

        by_search = self.client.get("/api/products/?search=apple")
        self.assertEqual([row["model"] for row in by_search.data["results"]], ["iPhone 13"])

        malformed = self.client.get("/api/products/?brand_id=not-a-uuid")
        self.assertEqual(malformed.status_code, 422)
        self.assertIn("brand_id", malformed.data["errors"])

    def test_seller_can_read_but_not_write_products(self):
        self.auth_as("seller", "seller123")
        self.assertEqual(self.client.get("/api/products/").status_code, 200)
        denied = self.client.post(
            "/api/products/",
            {"brand": str(self.apple.id), "model": "X", "purchase_price": "1", "selling_price": "2"},
            format="json",
        )
        self.assertEqual(denied.status_code, 403)
        self.assertFalse(denied.data["success"])

    def test_brand_names_are_trimmed_and_unique(self):
        self.auth_as("admin", "admin123")
        created = self.client.post("/api/brands/", {"name": "  Xiaomi  "}, format="json")
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.data["name"], "Xiaomi")

        duplicate = self.client.post("/api/brands/", {"name": "xiaomi"}, format="json")
        self.assertEqual(duplicate.status_code, 422)

        searched = self.client.get("/api/brands/?search=xia")
        self.assertEqual([row["name"] for row in searched.data["results"]], ["Xiaomi"])

    def test_brand_statistics(self):
        self.auth_as("admin", "admin123")
        Product.objects.create(brand=self.apple, model="iPhone 13", purchase_price=1, selling_price=2, quantity=4)

        response = self.client.get("/api/brands/statistics/")
        self.assertEqual(response.status_code, 200)
        data = response.data["data"]
        self.assertEqual(data["total_brands"], 2)
        self.assertEqual(data["brands_with_products"], 1)
        self.assertEqual(data["top_brands"][0]["name"], "Apple")
        self.assertEqual(data["top_brands"][0]["total_stock"], 4)

    def test_list_is_wrapped_in_success_envelope(self):
        self.auth_as("seller", "seller123")
        response = self.client.get("/api/brands/")
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["count"], 2)
