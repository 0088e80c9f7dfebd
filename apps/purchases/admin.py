from django.contrib import admin

from apps.purchases.models import Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    autocomplete_fields = ("product",)


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "supplier",
        "status",
        "purchase_date",
        "due_date",
        "total_amount",
        "paid_amount",
        "created_by",
        "created_at",
    )
    list_filter = ("status", "supplier")
    search_fields = ("invoice_number", "supplier__name")
    autocomplete_fields = ("created_by",)
    inlines = [PurchaseItemInline]
