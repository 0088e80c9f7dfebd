from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.inventory.views import BuyPhoneStatisticsView, BuyPhoneViewSet

router = DefaultRouter()
router.register("buy-phones", BuyPhoneViewSet, basename="buy-phone")

urlpatterns = [
    path("buy-phones-stats/", BuyPhoneStatisticsView.as_view(), name="buy-phone-stats"),
]
urlpatterns += router.urls
