from django.urls import path

from apps.reports.views import DashboardStatisticsView, HistoryView

urlpatterns = [
    path("dashboard/statistics/", DashboardStatisticsView.as_view(), name="dashboard-statistics"),
    path("history/", HistoryView.as_view(), name="history"),
]
