from django.contrib import admin

from apps.exchanges.models import Exchange


@admin.register(Exchange)
class ExchangeAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "buy_phone", "sale", "difference_amount", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("customer__name", "customer__phone", "buy_phone__imei", "sale__sale_number")
