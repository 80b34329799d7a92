import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.catalog.models import Product
from apps.utils.exceptions import Conflict, InternalError, InvalidInput, NotFound
from apps.utils.unit_of_work import UnitOfWork

from . import movements
from .models import MAX_QUANTITY, InventoryItem, MovementType, StockMovement

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class StockChange:
    item: InventoryItem
    movement: StockMovement


@dataclass(frozen=True)
class TransferResult:
    source: StockChange
    destination: StockChange
    reference_id: str


@dataclass(frozen=True)
class StockAlert:
    type: str
    priority: str
    item: InventoryItem
    current_level: int
    threshold: int


def _require_quantity(value, field, allow_zero=True) -> int:
    if value is None or value == "":
        raise InvalidInput(f"{field} is required.")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{field} must be a whole number.")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidInput(f"{field} must be {'zero or ' if allow_zero else ''}positive.")
    if value > MAX_QUANTITY:
        raise InvalidInput(f"{field} must not exceed {MAX_QUANTITY}.")
    return value


def _check_resulting_quantity(item, before, after):
    if after < 0:
        raise InvalidInput(
            f"Insufficient stock for {item.sku}. On hand: {before}, requested: {before - after}",
            code="insufficient_stock",
        )
    if after > MAX_QUANTITY:
        raise InvalidInput(f"On-hand for {item.sku} would exceed {MAX_QUANTITY}.")


def _fetch_item(inventory_item_id) -> InventoryItem:
    try:
        return (
            InventoryItem.objects
            .select_related('product', 'variant', 'warehouse')
            .get(pk=inventory_item_id)
        )
    except (InventoryItem.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound("Inventory item not found.")


def _write_item(item: InventoryItem, **changes) -> InventoryItem:
    """
    Compare-and-set on the version read with `item`. Zero rows means someone
    else wrote the row since, so nothing is changed and Conflict is raised.
    """
    updated = (
        InventoryItem.objects
        .filter(pk=item.pk, version=item.version)
        .update(version=F('version') + 1, updated_at=timezone.now(), **changes)
    )
    if updated == 0:
        logger.info(
            f"Version conflict on inventory item {item.pk} (read v{item.version})",
            extra={"inventory_item_id": item.pk},
        )
        raise Conflict("Inventory item was modified concurrently; retry the request.")
    item.refresh_from_db()
    return item


def _append_movement(item, movement_type, quantity, before, after, *, occurred_at, actor_id,
                     reason="", notes="", reference_type="", reference_id="", unit_cost=None):
    movements.check_entry(movement_type, quantity, before, after)
    return StockMovement.objects.create(
        type=movement_type,
        inventory_item=item,
        product_id=item.product_id,
        variant_id=item.variant_id,
        warehouse_id=item.warehouse_id,
        quantity=quantity,
        quantity_before=before,
        quantity_after=after,
        unit_cost=unit_cost,
        reference_type=reference_type or "",
        reference_id=reference_id or "",
        reason=reason or "",
        notes=notes or "",
        actor_id=str(actor_id or SYSTEM_ACTOR),
        occurred_at=occurred_at,
    )


class InventoryService:
    """
    Core Logic for Inventory Management.
    ALL on-hand changes pass through here; each one reads the item, writes it
    and appends its ledger entry inside a single UnitOfWork, so the whole
    operation shares one time budget.
    """

    @staticmethod
    def adjust_stock(inventory_item_id, new_quantity, reason=None, notes="", actor_id=None) -> StockChange:
        """
        Set on-hand to an absolute `new_quantity` (cycle counts, audits).

        Reserved quantity is left alone; available is recomputed as
        max(0, new_quantity - reserved). Re-issuing the same target writes a
        zero-quantity ADJUSTMENT and changes nothing else.
        """
        if not inventory_item_id:
            raise InvalidInput("Inventory item ID and new quantity are required.")
        target = _require_quantity(new_quantity, "newQuantity")

        try:
            with UnitOfWork() as uow:
                item = _fetch_item(inventory_item_id)
                before = item.quantity
                delta = target - before
                now = timezone.now()

                item = _write_item(
                    item,
                    quantity=target,
                    available_quantity=InventoryItem.compute_available(target, item.reserved_quantity),
                    last_movement_at=now,
                )
                movement = _append_movement(
                    item, MovementType.ADJUSTMENT, abs(delta), before, target,
                    occurred_at=now,
                    actor_id=actor_id,
                    reason=reason or settings.DEFAULT_ADJUSTMENT_REASON,
                    notes=notes,
                )
                uow.commit()
        except DatabaseError as e:
            logger.error(f"Stock adjustment failed for {inventory_item_id}: {e}", exc_info=True)
            raise InternalError("Failed to adjust stock.") from e

        logger.info(
            f"Adjusted {item.sku}@{item.warehouse.code}: {before} -> {target} (delta {delta:+d})",
            extra={"inventory_item_id": item.pk, "actor_id": movement.actor_id},
        )
        return StockChange(item=item, movement=movement)

    @staticmethod
    def record_movement(inventory_item_id, movement_type, quantity, reason="", notes="",
                        reference_type="", reference_id="", unit_cost=None, actor_id=None) -> StockChange:
        """
        Apply a typed, non-adjustment movement (receipt, shipment, return,
        damage, one side of a transfer). Outbound movements may not take
        on-hand below zero.
        """
        if not inventory_item_id:
            raise InvalidInput("Inventory item ID is required.")
        if movement_type not in MovementType.values:
            raise InvalidInput(f"Unknown movement type: {movement_type}")
        if movement_type == MovementType.ADJUSTMENT:
            raise InvalidInput("Use a stock adjustment to set an absolute quantity.")
        qty = _require_quantity(quantity, "quantity", allow_zero=False)

        try:
            with UnitOfWork() as uow:
                item = _fetch_item(inventory_item_id)
                before = item.quantity
                after = movements.apply(movement_type, before, qty)
                _check_resulting_quantity(item, before, after)
                now = timezone.now()

                item = _write_item(
                    item,
                    quantity=after,
                    available_quantity=InventoryItem.compute_available(after, item.reserved_quantity),
                    last_movement_at=now,
                )
                movement = _append_movement(
                    item, movement_type, qty, before, after,
                    occurred_at=now,
                    actor_id=actor_id,
                    reason=reason,
                    notes=notes,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    unit_cost=unit_cost,
                )
                uow.commit()
        except DatabaseError as e:
            logger.error(f"{movement_type} failed for {inventory_item_id}: {e}", exc_info=True)
            raise InternalError("Failed to record stock movement.") from e

        logger.info(
            f"{movement_type} {item.sku}@{item.warehouse.code}: {before} -> {after}",
            extra={"inventory_item_id": item.pk, "actor_id": movement.actor_id},
        )
        return StockChange(item=item, movement=movement)

    @staticmethod
    def transfer_stock(source_item_id, destination_item_id, quantity, reason="", notes="",
                       actor_id=None) -> TransferResult:
        """
        Move units of the same product/variant between two warehouses as one
        TRANSFER_OUT + TRANSFER_IN pair sharing a reference id.
        """
        if not source_item_id or not destination_item_id:
            raise InvalidInput("Source and destination inventory items are required.")
        if str(source_item_id) == str(destination_item_id):
            raise InvalidInput("Source and destination must differ.")
        qty = _require_quantity(quantity, "quantity", allow_zero=False)

        reference_id = uuid.uuid4().hex
        results = {}

        try:
            with UnitOfWork() as uow:
                source = _fetch_item(source_item_id)
                destination = _fetch_item(destination_item_id)
                if (source.product_id, source.variant_id) != (destination.product_id, destination.variant_id):
                    raise InvalidInput("Transfers must move the same product and variant.")
                if source.warehouse_id == destination.warehouse_id:
                    raise InvalidInput("Transfers must move stock between different warehouses.")

                legs = {
                    source.pk: (source, MovementType.TRANSFER_OUT),
                    destination.pk: (destination, MovementType.TRANSFER_IN),
                }
                planned = {}
                for pk, (item, movement_type) in legs.items():
                    after = movements.apply(movement_type, item.quantity, qty)
                    _check_resulting_quantity(item, item.quantity, after)
                    planned[pk] = (item.quantity, after)

                now = timezone.now()
                # Deterministic write order across both rows
                for pk in sorted(legs, key=str):
                    item, movement_type = legs[pk]
                    before, after = planned[pk]
                    item = _write_item(
                        item,
                        quantity=after,
                        available_quantity=InventoryItem.compute_available(after, item.reserved_quantity),
                        last_movement_at=now,
                    )
                    movement = _append_movement(
                        item, movement_type, qty, before, after,
                        occurred_at=now,
                        actor_id=actor_id,
                        reason=reason or "Warehouse transfer",
                        notes=notes,
                        reference_type="TRANSFER",
                        reference_id=reference_id,
                    )
                    results[pk] = StockChange(item=item, movement=movement)
                uow.commit()
        except DatabaseError as e:
            logger.error(f"Transfer {source_item_id} -> {destination_item_id} failed: {e}", exc_info=True)
            raise InternalError("Failed to transfer stock.") from e

        logger.info(
            f"Transferred {qty} x {source.sku}: {source.warehouse.code} -> {destination.warehouse.code}",
            extra={"inventory_item_id": source.pk, "actor_id": actor_id or SYSTEM_ACTOR},
        )
        return TransferResult(
            source=results[source.pk],
            destination=results[destination.pk],
            reference_id=reference_id,
        )

    @staticmethod
    def stock_alerts(warehouse_id=None) -> List[StockAlert]:
        """
        OUT_OF_STOCK (HIGH), LOW_STOCK (MEDIUM, HIGH at or below half the
        minimum) and OVERSTOCK (LOW) for tracked, active products.
        """
        qs = (
            InventoryItem.objects
            .select_related('product', 'variant', 'warehouse')
            .filter(
                product__status=Product.Status.ACTIVE,
                product__track_inventory=True,
                warehouse__is_active=True,
            )
            .exclude(status=InventoryItem.Status.EXPIRED)
            .order_by('available_quantity')
        )
        if warehouse_id:
            qs = qs.filter(warehouse_id=warehouse_id)

        alerts = []
        for item in qs:
            min_level = item.min_stock_level
            max_level = item.product.max_stock_level
            if item.available_quantity <= 0:
                alerts.append(StockAlert("OUT_OF_STOCK", "HIGH", item, item.available_quantity, 0))
            elif item.available_quantity <= min_level:
                priority = "HIGH" if item.available_quantity * 2 <= min_level else "MEDIUM"
                alerts.append(StockAlert("LOW_STOCK", priority, item, item.available_quantity, min_level))
            elif max_level is not None and item.quantity > max_level:
                alerts.append(StockAlert("OVERSTOCK", "LOW", item, item.quantity, max_level))
        return alerts

    @staticmethod
    def reconcile_available(warehouse_id: Optional[str] = None) -> int:
        """
        Repair rows whose stored available_quantity drifted from
        max(0, quantity - reserved_quantity). On-hand is untouched, so no
        ledger entry is written.
        """
        qs = (
            InventoryItem.objects
            .annotate(expected_available=Greatest(F('quantity') - F('reserved_quantity'), Value(0)))
            .exclude(available_quantity=F('expected_available'))
        )
        if warehouse_id:
            qs = qs.filter(warehouse_id=warehouse_id)

        fixed = 0
        for item in qs.select_related('product', 'variant', 'warehouse'):
            expected = item.expected_available
            logger.warning(
                f"Mismatch {item.warehouse.code} | {item.sku}: "
                f"stored available={item.available_quantity} != expected={expected}",
                extra={"inventory_item_id": item.pk},
            )
            try:
                with UnitOfWork() as uow:
                    _write_item(item, available_quantity=expected)
                    uow.commit()
            except Conflict:
                # Written concurrently; the writer already recomputed it
                continue
            fixed += 1
        return fixed
