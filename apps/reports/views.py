from rest_framework import generics

from apps.common.permissions import RolePermission
from apps.common.responses import ok
from apps.reports import services
from apps.reports.serializers import HistoryQuerySerializer


class DashboardStatisticsView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_dashboard"]}

    def get(self, request, *args, **kwargs):
        return ok(services.dashboard_statistics())


class HistoryView(generics.GenericAPIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["view_reports"]}

    def get(self, request, *args, **kwargs):
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return ok(services.history_feed(limit=query.validated_data["limit"]))
