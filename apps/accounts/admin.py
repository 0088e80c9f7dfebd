from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (("Phone shop", {"fields": ("name", "role", "phone")}),)
    list_display = ("username", "name", "role", "phone", "is_active", "last_login")
    list_filter = ("role", "is_active")
    search_fields = ("username", "name", "phone")
