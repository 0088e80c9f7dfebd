from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import Product
from apps.common.serializers import ListQuerySerializer
from apps.purchases.models import Purchase, PurchaseItem, PurchaseStatus
from apps.suppliers.models import Supplier


class PurchaseItemSerializer(serializers.ModelSerializer):
    product_id = serializers.PrimaryKeyRelatedField(source="product", queryset=Product.objects.all())
    product_model = serializers.CharField(source="product.model", read_only=True)
    total_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseItem
        fields = ["id", "product_id", "product_model", "quantity", "unit_price", "total_price", "state", "notes"]
        read_only_fields = ["id"]
        extra_kwargs = {
            "quantity": {"min_value": 1},
            "unit_price": {"min_value": Decimal("0")},
        }


class PurchaseSerializer(serializers.ModelSerializer):
    supplier_id = serializers.PrimaryKeyRelatedField(
        source="supplier", queryset=Supplier.objects.all(), required=False, allow_null=True
    )
    supplier_name = serializers.CharField(source="supplier.name", read_only=True, default=None)
    created_by_name = serializers.CharField(source="created_by.name", read_only=True, default=None)
    items = PurchaseItemSerializer(many=True)
    grand_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    total_items = serializers.IntegerField(read_only=True)

    class Meta:
        model = Purchase
        fields = [
            "id",
            "supplier_id",
            "supplier_name",
            "invoice_number",
            "status",
            "purchase_date",
            "invoice_date",
            "due_date",
            "tax_rate",
            "tax_amount",
            "shipping_cost",
            "paid_amount",
            "total_amount",
            "grand_total",
            "balance",
            "total_items",
            "notes",
            "items",
            "created_by",
            "created_by_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "total_amount", "created_by", "created_at", "updated_at"]
        validators = []
        extra_kwargs = {
            "invoice_number": {"required": False, "allow_blank": True, "validators": []},
            "status": {"required": False},
            "tax_rate": {"min_value": Decimal("0"), "max_value": Decimal("100")},
            "tax_amount": {"min_value": Decimal("0")},
            "shipping_cost": {"min_value": Decimal("0")},
            "paid_amount": {"min_value": Decimal("0")},
        }

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required.")
        return value


class PurchaseListQuerySerializer(ListQuerySerializer):
    status = serializers.ChoiceField(choices=PurchaseStatus.choices, required=False)
    supplier_id = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False)
