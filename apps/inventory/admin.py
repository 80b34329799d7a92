# apps/inventory/admin.py
from django.contrib import admin
from .models import InventoryItem, StockMovement


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('product', 'variant', 'warehouse', 'quantity', 'reserved_quantity', 'available_quantity', 'status')
    list_filter = ('warehouse', 'status')
    search_fields = ('product__name', 'product__sku', 'variant__sku', 'location_code')
    # On-hand changes go through InventoryService so the ledger stays complete
    readonly_fields = ('quantity', 'reserved_quantity', 'available_quantity', 'last_movement_at', 'version')


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ('occurred_at', 'type', 'inventory_item', 'quantity', 'quantity_before', 'quantity_after', 'actor_id')
    list_filter = ('type', 'warehouse', 'occurred_at')
    search_fields = ('reference_id', 'reason', 'product__sku')

    def has_add_permission(self, request):
        return False # Logs are immutable/system-generated

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
