from decimal import Decimal

from rest_framework import serializers

from apps.catalog.models import Brand, Product
from apps.common.serializers import QuerySerializer


class BrandSerializer(serializers.ModelSerializer):
    products_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Brand
        fields = ["id", "name", "products_count", "created_at", "updated_at"]
        read_only_fields = ["id", "products_count", "created_at", "updated_at"]

    def validate_name(self, value):
        name = value.strip()
        if not name:
            raise serializers.ValidationError("This field may not be blank.")
        queryset = Brand.objects.filter(name__iexact=name)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("The name has already been taken.")
        return name


class ProductSerializer(serializers.ModelSerializer):
    brand_name = serializers.CharField(source="brand.name", read_only=True)
    imei = serializers.CharField(max_length=15, required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "brand",
            "brand_name",
            "model",
            "storage",
            "color",
            "imei",
            "purchase_price",
            "selling_price",
            "quantity",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "brand_name", "created_at", "updated_at"]
        extra_kwargs = {
            "purchase_price": {"min_value": Decimal("0")},
            "selling_price": {"min_value": Decimal("0")},
            "quantity": {"min_value": 0},
        }

    def validate_imei(self, value):
        if not value:
            return None
        value = value.strip()
        if len(value) != 15 or not value.isdigit():
            raise serializers.ValidationError("The imei must be 15 digits.")
        queryset = Product.objects.filter(imei=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("The imei has already been taken.")
        return value


class ProductListQuerySerializer(QuerySerializer):
    search = serializers.CharField(required=False)
    brand_id = serializers.UUIDField(required=False)
