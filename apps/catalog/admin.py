from django.contrib import admin

from apps.catalog.models import Brand, Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("model", "brand", "storage", "color", "imei", "selling_price", "quantity", "updated_at")
    list_filter = ("brand",)
    search_fields = ("model", "imei", "brand__name")


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ("name", "updated_at")
    search_fields = ("name",)
