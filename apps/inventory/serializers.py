from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import Brand
from apps.common.serializers import ListQuerySerializer
from apps.inventory.models import BuyPhone, PhoneCondition


class BuyPhoneSerializer(serializers.ModelSerializer):
    brand_id = serializers.PrimaryKeyRelatedField(source="brand", queryset=Brand.objects.all())
    brand_name = serializers.CharField(source="brand.name", read_only=True)
    imei = serializers.CharField(max_length=15, required=False, allow_blank=True, allow_null=True)
    received_by_name = serializers.CharField(source="received_by.name", read_only=True, default=None)
    sold_to_name = serializers.CharField(source="sold_to.name", read_only=True, default=None)
    potential_profit = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    profit_margin = serializers.DecimalField(max_digits=8, decimal_places=2, read_only=True)
    is_sold = serializers.BooleanField(read_only=True)
    is_available = serializers.BooleanField(read_only=True)
    needs_testing = serializers.BooleanField(read_only=True)
    description = serializers.CharField(read_only=True)
    days_in_inventory = serializers.IntegerField(read_only=True)

    class Meta:
        model = BuyPhone
        fields = [
            "id",
            "seller_name",
            "seller_phone",
            "brand_id",
            "brand_name",
            "model",
            "color",
            "storage",
            "imei",
            "condition",
            "buy_price",
            "resell_price",
            "status",
            "notes",
            "issues",
            "received_date",
            "sold_date",
            "received_by",
            "received_by_name",
            "sold_to",
            "sold_to_name",
            "potential_profit",
            "profit_margin",
            "is_sold",
            "is_available",
            "needs_testing",
            "description",
            "days_in_inventory",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "sold_date", "received_by", "sold_to", "created_at", "updated_at"]
        extra_kwargs = {
            "buy_price": {"min_value": Decimal("0")},
            "resell_price": {"min_value": Decimal("0")},
        }
        # imei uniqueness is enforced by the ledger services
        validators = []


class SellPhoneSerializer(serializers.Serializer):
    sold_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True)


class MarkTestedSerializer(serializers.Serializer):
    issues = serializers.ListField(child=serializers.CharField(), required=False, allow_null=True)


class StatisticsQuerySerializer(serializers.Serializer):
    period = serializers.CharField(default="month", allow_blank=True)


class BuyPhoneListQuerySerializer(ListQuerySerializer):
    status = serializers.CharField(required=False)
    search = serializers.CharField(required=False)
    condition = serializers.ChoiceField(choices=PhoneCondition.choices, required=False)
    brand_id = serializers.UUIDField(required=False)
