import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("catalog", "0001_initial"),
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BuyPhone",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("seller_name", models.CharField(max_length=255)),
                ("seller_phone", models.CharField(blank=True, db_index=True, max_length=50)),
                ("model", models.CharField(max_length=255)),
                ("color", models.CharField(blank=True, max_length=100)),
                ("storage", models.CharField(blank=True, max_length=50)),
                ("imei", models.CharField(blank=True, max_length=15, null=True)),
                (
                    "condition",
                    models.CharField(
                        choices=[
                            ("excellent", "Excellent"),
                            ("very_good", "Very good"),
                            ("good", "Good"),
                            ("fair", "Fair"),
                            ("damaged", "Damaged"),
                            ("broken", "Broken"),
                        ],
                        default="good",
                        max_length=20,
                    ),
                ),
                ("buy_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("resell_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("tested", "Tested"),
                            ("listed", "Listed"),
                            ("sold", "Sold"),
                            ("returned", "Returned"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="received",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("issues", models.TextField(blank=True)),
                ("received_date", models.DateField(db_index=True, default=django.utils.timezone.localdate)),
                ("sold_date", models.DateField(blank=True, db_index=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "brand",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="buy_phones", to="catalog.brand"
                    ),
                ),
                (
                    "received_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="received_phones",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sold_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bought_phones",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "base_manager_name": "all_objects",
                "indexes": [models.Index(fields=["condition"], name="buy_phone_condition_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("imei__isnull", False)), fields=("imei",), name="unique_buy_phone_imei"
                    )
                ],
            },
        ),
    ]
