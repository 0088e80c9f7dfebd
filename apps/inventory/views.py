import logging

from rest_framework import generics, status, viewsets
from rest_framework.decorators import action

from apps.common.permissions import RolePermission
from apps.common.responses import ok
from apps.inventory import services
from apps.inventory.models import BuyPhone
from apps.inventory.serializers import (
    BuyPhoneListQuerySerializer,
    BuyPhoneSerializer,
    MarkTestedSerializer,
    SellPhoneSerializer,
    StatisticsQuerySerializer,
)

logger = logging.getLogger(__name__)


class BuyPhoneViewSet(viewsets.ModelViewSet):
    serializer_class = BuyPhoneSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_buy_phones"],
        "retrieve": ["view_buy_phones"],
        "export": ["view_buy_phones"],
        "create": ["manage_buy_phones"],
        "update": ["manage_buy_phones"],
        "partial_update": ["manage_buy_phones"],
        "destroy": ["manage_buy_phones"],
        "sell": ["manage_buy_phones"],
        "mark_tested": ["manage_buy_phones"],
        "mark_listed": ["manage_buy_phones"],
        "mark_sold": ["manage_buy_phones"],
        "mark_returned": ["manage_buy_phones"],
    }

    def get_queryset(self):
        queryset = BuyPhone.objects.select_related("brand", "received_by", "sold_to")
        if self.action in {"list", "export"}:
            queryset = services.filter_phones(queryset, BuyPhoneListQuerySerializer.from_request(self.request))
        return queryset

    def _respond(self, phone, message, status_code=status.HTTP_200_OK):
        return ok(self.get_serializer(phone).data, message=message, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        phone = services.create_phone(request.user, **serializer.validated_data)
        return self._respond(phone, "Phone bought and added successfully", status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        phone = self.get_object()
        serializer = self.get_serializer(phone, data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        phone = services.update_phone(phone, request.user, **serializer.validated_data)
        return self._respond(phone, "Phone updated successfully")

    def destroy(self, request, *args, **kwargs):
        services.soft_delete_phone(self.get_object(), request.user)
        return ok(message="Phone deleted successfully")

    @action(detail=True, methods=["post"])
    def sell(self, request, pk=None):
        serializer = SellPhoneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        phone = services.sell_phone(self.get_object(), request.user, sold_price=serializer.validated_data.get("sold_price"))
        return self._respond(phone, "Phone sold successfully")

    @action(detail=True, methods=["post"], url_path="mark-tested")
    def mark_tested(self, request, pk=None):
        serializer = MarkTestedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        phone = services.mark_tested(self.get_object(), request.user, issues=serializer.validated_data.get("issues"))
        return self._respond(phone, "Phone marked as tested")

    @action(detail=True, methods=["post"], url_path="mark-listed")
    def mark_listed(self, request, pk=None):
        phone = services.mark_listed(self.get_object(), request.user)
        return self._respond(phone, "Phone marked as listed")

    @action(detail=True, methods=["post"], url_path="mark-sold")
    def mark_sold(self, request, pk=None):
        phone = services.mark_sold(self.get_object(), request.user)
        return self._respond(phone, "Phone marked as sold")

    @action(detail=True, methods=["post"], url_path="mark-returned")
    def mark_returned(self, request, pk=None):
        phone = services.mark_returned(self.get_object(), request.user)
        return self._respond(phone, "Phone marked as returned")

    @action(detail=False, methods=["get"])
    def export(self, request):
        queryset = self.get_queryset()
        logger.info("Exporting %s phones to CSV for %s", queryset.count(), request.user.username)
        return services.export_phones_csv(queryset)


class BuyPhoneStatisticsView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_buy_phones"]}

    def get(self, request, *args, **kwargs):
        query = StatisticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return ok(services.statistics(query.validated_data["period"]))
