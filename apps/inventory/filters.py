import django_filters
from django.db.models import F, Q
from django.db.models.functions import Coalesce
from .models import InventoryItem, MovementType


class InventoryItemFilter(django_filters.FilterSet):
    """Query string of GET /inventory/stock/."""
    warehouseId = django_filters.UUIDFilter(field_name='warehouse_id')
    status = django_filters.ChoiceFilter(choices=InventoryItem.Status.choices)
    search = django_filters.CharFilter(method='filter_search')
    alertsOnly = django_filters.BooleanFilter(method='filter_alerts_only')

    def filter_search(self, queryset, name, value):
        term = (value or '').strip()
        if not term:
            return queryset
        return queryset.filter(
            Q(product__name__icontains=term)
            | Q(product__sku__icontains=term)
            | Q(variant__name__icontains=term)
            | Q(variant__sku__icontains=term)
            | Q(location_code__icontains=term)
        )

    def filter_alerts_only(self, queryset, name, value):
        if not value:
            return queryset
        # Variant threshold wins over the product's
        return queryset.annotate(
            min_level=Coalesce(F('variant__min_stock_level'), F('product__min_stock_level'))
        ).filter(
            Q(available_quantity__lte=0) | Q(available_quantity__lte=F('min_level'))
        )


class StockMovementFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=MovementType.choices)
    warehouseId = django_filters.UUIDFilter(field_name='warehouse_id')
    inventoryItemId = django_filters.UUIDFilter(field_name='inventory_item_id')
