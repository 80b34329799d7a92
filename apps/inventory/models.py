from django.db import models
from django.utils import timezone
from apps.catalog.models import Product, ProductVariant
from apps.warehouse.models import Warehouse
from apps.utils.models import TimestampedModel


# Largest value the integer stock columns hold on every supported backend
MAX_QUANTITY = 2147483647


class MovementType(models.TextChoices):
    RECEIPT = "RECEIPT", "Receipt"
    SHIPMENT = "SHIPMENT", "Shipment"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"
    TRANSFER_OUT = "TRANSFER_OUT", "Transfer Out"
    TRANSFER_IN = "TRANSFER_IN", "Transfer In"
    RETURN = "RETURN", "Return"
    DAMAGE = "DAMAGE", "Damage"


class InventoryItem(TimestampedModel):
    """
    Stock of one product (or variant) in one warehouse.
    quantity / available_quantity are written only by apps.inventory.services.
    """
    class Status(models.TextChoices):
        AVAILABLE = "AVAILABLE", "Available"
        RESERVED = "RESERVED", "Reserved"
        QUARANTINE = "QUARANTINE", "Quarantine"
        DAMAGED = "DAMAGED", "Damaged"
        EXPIRED = "EXPIRED", "Expired"

    class StockLevel(models.TextChoices):
        IN_STOCK = "IN_STOCK", "In Stock"
        LOW_STOCK = "LOW_STOCK", "Low Stock"
        OUT_OF_STOCK = "OUT_OF_STOCK", "Out of Stock"

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='inventory_items'
    )
    variant = models.ForeignKey(
        ProductVariant,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='inventory_items'
    )
    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        related_name='inventory_items'
    )

    # Total on-hand (Physical count)
    quantity = models.IntegerField(default=0)

    # Locked for pending orders
    reserved_quantity = models.IntegerField(default=0)

    # max(0, quantity - reserved_quantity), kept in step by every write
    available_quantity = models.IntegerField(default=0)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    location_code = models.CharField(max_length=50, blank=True)

    last_movement_at = models.DateTimeField(null=True, blank=True)
    last_count_at = models.DateTimeField(null=True, blank=True)

    # Optimistic concurrency token
    version = models.PositiveIntegerField(default=1)

    class Meta:
        verbose_name = "Inventory Item"
        indexes = [
            models.Index(fields=['warehouse', 'product'], name='inv_item_wh_product_idx'),
            models.Index(fields=['status'], name='inv_item_status_idx'),
            models.Index(fields=['last_movement_at'], name='inv_item_last_movement_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'variant', 'warehouse'],
                name='uniq_inventory_item_product_variant_warehouse',
            ),
            models.UniqueConstraint(
                fields=['product', 'warehouse'],
                condition=models.Q(variant__isnull=True),
                name='uniq_inventory_item_product_warehouse_no_variant',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='inventory_item_quantity_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(reserved_quantity__gte=0),
                name='inventory_item_reserved_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(available_quantity__gte=0),
                name='inventory_item_available_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.warehouse.code} | {self.sku} | Avail: {self.available_quantity}"

    @staticmethod
    def compute_available(quantity, reserved_quantity):
        return max(0, quantity - reserved_quantity)

    def save(self, *args, **kwargs):
        self.available_quantity = self.compute_available(self.quantity, self.reserved_quantity)
        super().save(*args, **kwargs)

    @property
    def sku(self):
        return self.variant.sku if self.variant_id else self.product.sku

    @property
    def min_stock_level(self):
        if self.variant_id and self.variant.min_stock_level is not None:
            return self.variant.min_stock_level
        return self.product.min_stock_level

    @property
    def reorder_point(self):
        if self.variant_id and self.variant.reorder_point is not None:
            return self.variant.reorder_point
        return self.product.reorder_point

    @property
    def stock_level(self):
        if self.available_quantity <= 0:
            return self.StockLevel.OUT_OF_STOCK
        if self.available_quantity <= self.min_stock_level:
            return self.StockLevel.LOW_STOCK
        return self.StockLevel.IN_STOCK


class ImmutableMovementError(Exception):
    pass


class StockMovement(models.Model):
    """
    Append-only ledger of every on-hand change. Rows are never updated or
    deleted; quantity_after == quantity_before +/- quantity per the type's
    polarity (see apps.inventory.movements).
    """
    id = models.BigAutoField(primary_key=True)

    type = models.CharField(max_length=20, choices=MovementType.choices)

    inventory_item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        related_name='movements'
    )
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='stock_movements')
    variant = models.ForeignKey(
        ProductVariant, null=True, blank=True, on_delete=models.PROTECT, related_name='stock_movements'
    )
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='stock_movements')

    # Magnitude of the change, always >= 0
    quantity = models.PositiveIntegerField()
    quantity_before = models.IntegerField()
    quantity_after = models.IntegerField()

    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Traceability
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.CharField(max_length=100, blank=True, db_index=True)
    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    actor_id = models.CharField(max_length=100, default="system")

    occurred_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-occurred_at', '-id']
        indexes = [
            models.Index(fields=['inventory_item', 'id'], name='stock_mvmt_item_id_idx'),
            models.Index(fields=['warehouse', 'type'], name='stock_mvmt_wh_type_idx'),
        ]

    def __str__(self):
        return f"{self.type} {self.quantity_before}->{self.quantity_after} ({self.inventory_item_id})"

    @property
    def total_cost(self):
        if self.unit_cost is None:
            return None
        return self.unit_cost * self.quantity

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableMovementError("Stock movements are immutable once written.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableMovementError("Stock movements cannot be deleted.")
