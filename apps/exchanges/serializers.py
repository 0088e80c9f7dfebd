from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import Brand
from apps.exchanges.models import Exchange
from apps.inventory.models import PhoneCondition


class ExchangeSerializer(serializers.ModelSerializer):
    sale_number = serializers.CharField(source="sale.sale_number", read_only=True)
    sold_phone = serializers.UUIDField(source="sale.buy_phone_id", read_only=True, default=None)
    sold_phone_model = serializers.CharField(source="sale.buy_phone.model", read_only=True, default=None)
    sold_price = serializers.DecimalField(source="sale.total_amount", max_digits=12, decimal_places=2, read_only=True)
    received_phone_model = serializers.CharField(source="buy_phone.model", read_only=True)
    received_phone_imei = serializers.CharField(source="buy_phone.imei", read_only=True)
    received_phone_price = serializers.DecimalField(
        source="buy_phone.buy_price", max_digits=12, decimal_places=2, read_only=True
    )
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    customer_phone = serializers.CharField(source="customer.phone", read_only=True)
    processed_by_name = serializers.CharField(source="processed_by.name", read_only=True, default=None)
    customer_pays = serializers.BooleanField(read_only=True)
    shop_pays = serializers.BooleanField(read_only=True)
    formatted_difference = serializers.CharField(read_only=True)

    class Meta:
        model = Exchange
        fields = [
            "id",
            "sale",
            "sale_number",
            "sold_phone",
            "sold_phone_model",
            "sold_price",
            "buy_phone",
            "received_phone_model",
            "received_phone_imei",
            "received_phone_price",
            "customer",
            "customer_name",
            "customer_phone",
            "difference_amount",
            "status",
            "customer_pays",
            "shop_pays",
            "formatted_difference",
            "processed_by",
            "processed_by_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ReceivedPhoneSerializer(serializers.Serializer):
    brand_id = serializers.PrimaryKeyRelatedField(source="brand", queryset=Brand.objects.all())
    model = serializers.CharField(max_length=255)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True, default="")
    storage = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True, default="")
    imei = serializers.CharField(min_length=15, max_length=15)
    condition = serializers.ChoiceField(choices=PhoneCondition.choices)
    buy_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    resell_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )


class SoldPhoneSerializer(serializers.Serializer):
    buy_phone_id = serializers.UUIDField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))


class ExchangeCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=255)
    customer_phone = serializers.CharField(max_length=50)
    received = ReceivedPhoneSerializer()
    sold = SoldPhoneSerializer()


class ExchangeStatisticsQuerySerializer(serializers.Serializer):
    period = serializers.CharField(required=False, default="month")
