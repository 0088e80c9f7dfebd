from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.exchanges.views import ExchangeStatisticsView, ExchangeViewSet

router = DefaultRouter()
router.register("exchanges", ExchangeViewSet, basename="exchange")

urlpatterns = [
    path("exchanges-stats/", ExchangeStatisticsView.as_view(), name="exchange-stats"),
]
urlpatterns += router.urls
