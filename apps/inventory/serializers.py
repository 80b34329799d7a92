from rest_framework import serializers
from .models import MAX_QUANTITY, InventoryItem, MovementType, StockMovement


class ProductSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    sku = serializers.CharField()
    primaryImage = serializers.CharField(source='primary_image')
    minStockLevel = serializers.IntegerField(source='min_stock_level')
    reorderPoint = serializers.IntegerField(source='reorder_point', allow_null=True)


class VariantSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    sku = serializers.CharField()
    attributes = serializers.JSONField()


class WarehouseSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    code = serializers.CharField()


class InventoryItemSerializer(serializers.ModelSerializer):
    productId = serializers.UUIDField(source='product_id', read_only=True)
    variantId = serializers.UUIDField(source='variant_id', read_only=True, allow_null=True)
    warehouseId = serializers.UUIDField(source='warehouse_id', read_only=True)
    reservedQuantity = serializers.IntegerField(source='reserved_quantity', read_only=True)
    availableQuantity = serializers.IntegerField(source='available_quantity', read_only=True)
    locationCode = serializers.CharField(source='location_code', read_only=True)
    lastMovement = serializers.DateTimeField(source='last_movement_at', read_only=True)
    lastCount = serializers.DateTimeField(source='last_count_at', read_only=True)
    stockLevel = serializers.CharField(source='stock_level', read_only=True)
    product = ProductSummarySerializer(read_only=True)
    variant = VariantSummarySerializer(read_only=True, allow_null=True)
    warehouse = WarehouseSummarySerializer(read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            'id', 'productId', 'variantId', 'warehouseId',
            'quantity', 'reservedQuantity', 'availableQuantity',
            'status', 'stockLevel', 'locationCode', 'lastMovement', 'lastCount',
            'version', 'product', 'variant', 'warehouse',
        ]


class StockMovementSerializer(serializers.ModelSerializer):
    inventoryItemId = serializers.UUIDField(source='inventory_item_id', read_only=True)
    productId = serializers.UUIDField(source='product_id', read_only=True)
    variantId = serializers.UUIDField(source='variant_id', read_only=True, allow_null=True)
    warehouseId = serializers.UUIDField(source='warehouse_id', read_only=True)
    quantityBefore = serializers.IntegerField(source='quantity_before', read_only=True)
    quantityAfter = serializers.IntegerField(source='quantity_after', read_only=True)
    unitCost = serializers.DecimalField(source='unit_cost', max_digits=12, decimal_places=2, read_only=True)
    totalCost = serializers.DecimalField(source='total_cost', max_digits=14, decimal_places=2, read_only=True)
    referenceType = serializers.CharField(source='reference_type', read_only=True)
    referenceId = serializers.CharField(source='reference_id', read_only=True)
    userId = serializers.CharField(source='actor_id', read_only=True)
    occurredAt = serializers.DateTimeField(source='occurred_at', read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'type', 'inventoryItemId', 'productId', 'variantId', 'warehouseId',
            'quantity', 'quantityBefore', 'quantityAfter',
            'unitCost', 'totalCost', 'referenceType', 'referenceId',
            'reason', 'notes', 'userId', 'occurredAt',
        ]


class StockAdjustmentSerializer(serializers.Serializer):
    """Body of POST /inventory/stock/."""
    inventoryItemId = serializers.UUIDField()
    newQuantity = serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    userId = serializers.CharField(max_length=100, required=False, allow_blank=True)


class StockMovementCreateSerializer(serializers.Serializer):
    inventoryItemId = serializers.UUIDField()
    type = serializers.ChoiceField(choices=MovementType.choices)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    referenceType = serializers.CharField(max_length=50, required=False, allow_blank=True)
    referenceId = serializers.CharField(max_length=100, required=False, allow_blank=True)
    unitCost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    userId = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate_type(self, value):
        if value == MovementType.ADJUSTMENT:
            raise serializers.ValidationError("Use POST /inventory/stock/ to adjust to an absolute quantity.")
        return value


class StockTransferSerializer(serializers.Serializer):
    sourceItemId = serializers.UUIDField()
    destinationItemId = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    userId = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['sourceItemId'] == attrs['destinationItemId']:
            raise serializers.ValidationError("Source and destination must differ.")
        return attrs


class AlertQuerySerializer(serializers.Serializer):
    warehouseId = serializers.UUIDField(required=False)


class StockAlertSerializer(serializers.Serializer):
    type = serializers.CharField()
    priority = serializers.CharField()
    currentLevel = serializers.IntegerField(source='current_level')
    threshold = serializers.IntegerField()
    inventoryItemId = serializers.UUIDField(source='item.id')
    productId = serializers.UUIDField(source='item.product_id')
    warehouseId = serializers.UUIDField(source='item.warehouse_id')
    product = ProductSummarySerializer(source='item.product')
    warehouse = WarehouseSummarySerializer(source='item.warehouse')


class MovementQuerySerializer(serializers.Serializer):
    """Filters live in StockMovementFilter; this only bounds the page."""
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=100)
