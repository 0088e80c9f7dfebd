from rest_framework import serializers

from apps.suppliers.models import Supplier


class SupplierSerializer(serializers.ModelSerializer):
    purchase_count = serializers.IntegerField(read_only=True, required=False)
    total_purchases = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True, required=False)
    last_purchase_date = serializers.DateField(read_only=True, required=False, allow_null=True)

    class Meta:
        model = Supplier
        fields = [
            "id",
            "name",
            "phone",
            "email",
            "contact_person",
            "address",
            "notes",
            "purchase_count",
            "total_purchases",
            "last_purchase_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("The name field is required.")
        return value
