from decimal import Decimal

from django.db.models import Count, DecimalField, Max, Q, Sum, Value
from django.db.models.functions import Coalesce
from rest_framework import viewsets

from apps.audit.services import record_audit
from apps.common.permissions import RolePermission
from apps.suppliers.models import Supplier
from apps.suppliers.serializers import SupplierSerializer


class SupplierViewSet(viewsets.ModelViewSet):
    serializer_class = SupplierSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_suppliers"],
        "retrieve": ["view_suppliers"],
        "create": ["manage_suppliers"],
        "update": ["manage_suppliers"],
        "partial_update": ["manage_suppliers"],
        "destroy": ["manage_suppliers"],
    }

    def get_queryset(self):
        queryset = Supplier.objects.annotate(
            purchase_count=Count("purchases"),
            total_purchases=Coalesce(
                Sum("purchases__total_amount"),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
            last_purchase_date=Max("purchases__purchase_date"),
        )
        search = (self.request.query_params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search)
                | Q(phone__icontains=search)
                | Q(contact_person__icontains=search)
                | Q(email__icontains=search)
            )
        return queryset.order_by("name")

    def perform_create(self, serializer):
        supplier = serializer.save()
        record_audit(
            actor=self.request.user,
            action="suppliers.supplier.create",
            entity_type="supplier",
            entity_id=supplier.id,
            payload={"name": supplier.name},
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="suppliers.supplier.delete",
            entity_type="supplier",
            entity_id=instance.id,
            payload={"name": instance.name},
        )
        super().perform_destroy(instance)
