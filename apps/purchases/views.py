import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action

from apps.common.permissions import RolePermission
from apps.common.responses import ok
from apps.purchases import services
from apps.purchases.models import Purchase
from apps.purchases.serializers import PurchaseListQuerySerializer, PurchaseSerializer

logger = logging.getLogger(__name__)


class PurchaseViewSet(viewsets.ModelViewSet):
    serializer_class = PurchaseSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "delete", "head", "options"]
    capability_map = {
        "list": ["view_purchases"],
        "retrieve": ["view_purchases"],
        "export": ["view_purchases"],
        "create": ["manage_purchases"],
        "complete": ["manage_purchases"],
        "cancel": ["manage_purchases"],
        "destroy": ["manage_purchases"],
    }

    def get_queryset(self):
        queryset = Purchase.objects.select_related("supplier", "created_by").prefetch_related("items__product")
        if self.action in {"list", "export"}:
            queryset = services.filter_purchases(queryset, PurchaseListQuerySerializer.from_request(self.request))
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        items = data.pop("items")
        purchase = services.create_purchase(request.user, items, **data)
        return ok(
            self.get_serializer(self.get_queryset().get(pk=purchase.pk)).data,
            message="Purchase created successfully",
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, *args, **kwargs):
        services.delete_purchase(self.get_object(), request.user)
        return ok(message="Purchase deleted successfully")

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        purchase = services.complete_purchase(self.get_object(), request.user)
        return ok(self.get_serializer(purchase).data, message="Purchase completed successfully")

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        purchase = services.cancel_purchase(self.get_object(), request.user)
        return ok(self.get_serializer(purchase).data, message="Purchase cancelled successfully")

    @action(detail=False, methods=["get"])
    def export(self, request):
        queryset = self.get_queryset()
        logger.info("Exporting %s purchases to CSV for %s", queryset.count(), request.user.username)
        return services.export_purchases_csv(queryset)
