from rest_framework import serializers

from apps.customers.models import Customer, normalize_phone


class CustomerSerializer(serializers.ModelSerializer):
    total_spent = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True, required=False)
    purchase_count = serializers.IntegerField(read_only=True, required=False)
    last_purchase_date = serializers.DateTimeField(read_only=True, required=False, allow_null=True)
    formatted_phone = serializers.CharField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "phone",
            "formatted_phone",
            "address",
            "total_spent",
            "purchase_count",
            "last_purchase_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {"phone": {"required": False}, "address": {"required": False}}

    def validate_phone(self, value):
        normalized = normalize_phone(value)
        if not normalized:
            return value
        queryset = Customer.objects.filter(phone_normalized=normalized)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A customer with this phone already exists.")
        return value
