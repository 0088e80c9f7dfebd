from django.contrib import admin

from apps.inventory.models import BuyPhone


@admin.register(BuyPhone)
class BuyPhoneAdmin(admin.ModelAdmin):
    list_display = ("model", "brand", "imei", "condition", "status", "buy_price", "resell_price", "received_date")
    list_filter = ("status", "condition", "brand")
    search_fields = ("imei", "model", "seller_name", "seller_phone")

    def get_queryset(self, request):
        return BuyPhone.all_objects.select_related("brand")
