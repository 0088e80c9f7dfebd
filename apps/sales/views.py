from django.db.models import Q
from rest_framework import status, viewsets

from apps.common.permissions import RolePermission
from apps.common.responses import ok
from apps.sales import services
from apps.sales.models import Sale
from apps.sales.serializers import SaleCreateSerializer, SaleListQuerySerializer, SaleSerializer


class SaleViewSet(viewsets.ModelViewSet):
    serializer_class = SaleSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "delete", "head", "options"]
    capability_map = {
        "list": ["view_sales"],
        "retrieve": ["view_sales"],
        "create": ["manage_sales"],
        "destroy": ["manage_sales"],
    }

    def get_queryset(self):
        queryset = Sale.objects.select_related("customer", "buy_phone", "created_by").prefetch_related("items")
        params = SaleListQuerySerializer.from_request(self.request) if self.action == "list" else {}

        search = params.get("search")
        if search:
            queryset = queryset.filter(
                Q(sale_number__icontains=search)
                | Q(customer__name__icontains=search)
                | Q(customer__phone__icontains=search)
                | Q(buy_phone__model__icontains=search)
                | Q(buy_phone__imei__icontains=search)
            )

        payment_status = params.get("payment_status")
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)

        start_date = params.get("start_date")
        if start_date:
            queryset = queryset.filter(created_at__date__range=(start_date, params.get("end_date", start_date)))
        return queryset.order_by("-created_at")

    def create(self, request, *args, **kwargs):
        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = services.record_sale(request.user, **serializer.validated_data)
        return ok(services.sale_receipt(sale), message="Sale completed successfully", status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        services.delete_sale(self.get_object(), request.user)
        return ok(message="Sale deleted successfully")
