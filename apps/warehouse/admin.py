from django.contrib import admin
from .models import Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "type", "city", "is_active")
    list_filter = ("type", "is_active")
    search_fields = ("name", "code", "city")
