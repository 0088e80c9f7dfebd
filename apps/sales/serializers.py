from decimal import Decimal

from rest_framework import serializers

from apps.common.serializers import ListQuerySerializer
from apps.sales.models import PaymentMethod, PaymentStatus, Sale, SaleItem


class SaleItemSerializer(serializers.ModelSerializer):
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = SaleItem
        fields = ["id", "product", "buy_phone", "quantity", "unit_price", "total_price"]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True, default=None)
    customer_phone = serializers.CharField(source="customer.phone", read_only=True, default=None)
    phone_model = serializers.CharField(source="buy_phone.model", read_only=True, default=None)
    phone_imei = serializers.CharField(source="buy_phone.imei", read_only=True, default=None)
    created_by_name = serializers.CharField(source="created_by.name", read_only=True, default=None)
    grand_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    items = SaleItemSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "sale_number",
            "customer",
            "customer_name",
            "customer_phone",
            "buy_phone",
            "phone_model",
            "phone_imei",
            "total_amount",
            "discount_amount",
            "tax_amount",
            "grand_total",
            "paid_amount",
            "payment_status",
            "payment_method",
            "notes",
            "items",
            "created_by",
            "created_by_name",
            "created_at",
        ]
        read_only_fields = fields


class SaleCreateSerializer(serializers.Serializer):
    buyer_name = serializers.CharField(max_length=255)
    buyer_phone = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True, default="")
    buyer_address = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True, default="")
    buy_phone_id = serializers.UUIDField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    discount_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True, default=Decimal("0")
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    payment_method = serializers.ChoiceField(
        choices=[choice for choice in PaymentMethod.values if choice != PaymentMethod.EXCHANGE],
        required=False,
        default=PaymentMethod.CASH,
    )


class SaleListQuerySerializer(ListQuerySerializer):
    search = serializers.CharField(required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
