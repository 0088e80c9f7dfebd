from django.contrib import admin

from apps.sales.models import Sale, SaleItem


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("sale_number", "customer", "buy_phone", "total_amount", "discount_amount", "payment_status", "created_at")
    list_filter = ("payment_status", "payment_method")
    search_fields = ("sale_number", "customer__name", "customer__phone", "buy_phone__imei")
    inlines = [SaleItemInline]
