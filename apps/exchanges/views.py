from rest_framework import generics, status, viewsets
from rest_framework.decorators import action

from apps.common.permissions import RolePermission
from apps.common.responses import ok
from apps.exchanges import services
from apps.exchanges.models import Exchange
from apps.exchanges.serializers import (
    ExchangeCreateSerializer,
    ExchangeSerializer,
    ExchangeStatisticsQuerySerializer,
)


class ExchangeViewSet(viewsets.ModelViewSet):
    serializer_class = ExchangeSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "delete", "head", "options"]
    capability_map = {
        "list": ["view_exchanges"],
        "retrieve": ["view_exchanges"],
        "create": ["manage_exchanges"],
        "complete": ["manage_exchanges"],
        "cancel": ["manage_exchanges"],
        "destroy": ["manage_exchanges"],
    }

    def get_queryset(self):
        queryset = Exchange.objects.select_related(
            "sale", "sale__buy_phone", "buy_phone", "customer", "processed_by"
        )
        if self.action == "list":
            queryset = services.filter_exchanges(queryset, self.request.query_params)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = ExchangeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        exchange = services.record_exchange(request.user, **serializer.validated_data)
        return ok(
            self.get_serializer(exchange).data,
            message="Exchange completed successfully",
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        exchange = services.complete_exchange(self.get_object(), request.user)
        return ok(self.get_serializer(exchange).data, message="Exchange completed successfully")

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        exchange = services.cancel_exchange(self.get_object(), request.user)
        return ok(self.get_serializer(exchange).data, message="Exchange cancelled successfully")

    def destroy(self, request, *args, **kwargs):
        services.delete_exchange(self.get_object(), request.user)
        return ok(message="Exchange deleted successfully")


class ExchangeStatisticsView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_exchanges"]}

    def get(self, request, *args, **kwargs):
        query = ExchangeStatisticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return ok(services.exchange_statistics(query.validated_data["period"]))
