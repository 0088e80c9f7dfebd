from decimal import Decimal

from django.db.models import Count, DecimalField, Max, Q, Sum, Value
from django.db.models.functions import Coalesce
from rest_framework import viewsets

from apps.audit.services import record_audit
from apps.common.permissions import RolePermission
from apps.customers.models import Customer
from apps.customers.serializers import CustomerSerializer


class CustomerViewSet(viewsets.ModelViewSet):
    serializer_class = CustomerSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_customers"],
        "retrieve": ["view_customers"],
        "create": ["manage_customers"],
        "update": ["manage_customers"],
        "partial_update": ["manage_customers"],
        "destroy": ["manage_customers"],
    }

    def get_queryset(self):
        queryset = Customer.objects.annotate(
            total_spent=Coalesce(
                Sum("sales__total_amount"),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=12, decimal_places=2),
            ),
            purchase_count=Count("sales"),
            last_purchase_date=Max("sales__created_at"),
        )
        search = self.request.query_params.get("search")
        if search:
            search = search.strip()
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))

        has_purchases = self.request.query_params.get("has_purchases")
        if has_purchases and has_purchases.strip().lower() in {"1", "true", "yes"}:
            queryset = queryset.filter(purchase_count__gt=0)
        return queryset.order_by("-created_at")

    def perform_create(self, serializer):
        customer = serializer.save()
        record_audit(
            actor=self.request.user,
            action="customers.customer.create",
            entity_type="customer",
            entity_id=customer.id,
            payload={"name": customer.name, "phone": customer.phone},
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="customers.customer.delete",
            entity_type="customer",
            entity_id=instance.id,
            payload={"name": instance.name, "phone": instance.phone},
        )
        super().perform_destroy(instance)
