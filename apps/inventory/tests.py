from unittest import mock

from django.db import DatabaseError, connection
from django.test import TestCase, override_settings

from apps.catalog.models import Product, ProductVariant
from apps.warehouse.models import Warehouse
from apps.inventory import movements, services
from apps.inventory.models import MAX_QUANTITY, ImmutableMovementError, InventoryItem, MovementType, StockMovement
from apps.inventory.services import InventoryService
from apps.utils.exceptions import Conflict, InternalError, InvalidInput, NotFound, Unavailable
from apps.utils.resilience import with_retry
from apps.utils.unit_of_work import UnitOfWork


def fetch(item):
    return InventoryItem.objects.select_related('product', 'variant', 'warehouse').get(pk=item.pk)


class InventoryTestMixin:
    def setUp(self):
        self.warehouse = Warehouse.objects.create(name="Main Warehouse", code="WH-MAIN")
        self.other_warehouse = Warehouse.objects.create(name="Distribution Center", code="WH-DIST")
        self.product = Product.objects.create(
            sku="LPS-001", name="Premium Laptop Stand", min_stock_level=20, max_stock_level=200
        )
        self.item = InventoryItem.objects.create(
            product=self.product, warehouse=self.warehouse, quantity=100, reserved_quantity=10
        )


class AdjustStockTests(InventoryTestMixin, TestCase):
    def test_adjust_sets_absolute_quantity_and_writes_ledger(self):
        change = InventoryService.adjust_stock(self.item.id, 150, reason="Cycle count", actor_id="u-1")

        self.assertEqual(change.item.quantity, 150)
        self.assertEqual(change.item.available_quantity, 140)
        self.assertEqual(change.item.version, 2)
        self.assertIsNotNone(change.item.last_movement_at)

        mv = change.movement
        self.assertEqual(mv.type, MovementType.ADJUSTMENT)
        self.assertEqual(mv.quantity, 50)
        self.assertEqual((mv.quantity_before, mv.quantity_after), (100, 150))
        self.assertEqual(mv.reason, "Cycle count")
        self.assertEqual(mv.actor_id, "u-1")
        self.assertEqual(mv.product_id, self.product.id)
        self.assertEqual(mv.warehouse_id, self.warehouse.id)

    def test_downward_adjustment_records_magnitude(self):
        change = InventoryService.adjust_stock(self.item.id, 40)
        self.assertEqual(change.movement.quantity, 60)
        self.assertEqual(movements.signed_delta(MovementType.ADJUSTMENT, 60, 100, 40), -60)

    @override_settings(DEFAULT_ADJUSTMENT_REASON="Manual adjustment")
    def test_default_reason_and_actor(self):
        change = InventoryService.adjust_stock(self.item.id, 90)
        self.assertEqual(change.movement.reason, "Manual adjustment")
        self.assertEqual(change.movement.actor_id, "system")

    def test_same_target_writes_zero_quantity_entry(self):
        change = InventoryService.adjust_stock(self.item.id, 100)
        self.assertEqual(change.item.quantity, 100)
        self.assertEqual(change.movement.quantity, 0)
        self.assertEqual(StockMovement.objects.filter(inventory_item=self.item).count(), 1)

    def test_available_floors_at_zero_when_reserved_exceeds_on_hand(self):
        change = InventoryService.adjust_stock(self.item.id, 4)
        self.assertEqual(change.item.quantity, 4)
        self.assertEqual(change.item.reserved_quantity, 10)
        self.assertEqual(change.item.available_quantity, 0)
        self.assertEqual(change.item.stock_level, InventoryItem.StockLevel.OUT_OF_STOCK)

    def test_cycle_count_up(self):
        item = InventoryItem.objects.create(
            product=self.product, warehouse=self.other_warehouse, quantity=10, reserved_quantity=3
        )
        change = InventoryService.adjust_stock(item.id, 15)
        self.assertEqual((change.item.quantity, change.item.available_quantity), (15, 12))
        self.assertEqual(
            (change.movement.quantity_before, change.movement.quantity_after, change.movement.quantity),
            (10, 15, 5),
        )

    def test_recount_with_reservations_above_on_hand(self):
        item = InventoryItem.objects.create(
            product=self.product, warehouse=self.other_warehouse, quantity=5, reserved_quantity=8
        )
        self.assertEqual(item.available_quantity, 0)
        change = InventoryService.adjust_stock(item.id, 5)
        self.assertEqual((change.item.quantity, change.item.available_quantity), (5, 0))
        self.assertEqual(change.movement.quantity, 0)

    def test_rejects_bad_quantities(self):
        for bad in (-1, None, "", "12", 1.5, True):
            with self.subTest(value=bad):
                with self.assertRaises(InvalidInput):
                    InventoryService.adjust_stock(self.item.id, bad)
        self.assertFalse(StockMovement.objects.exists())

    def test_missing_item(self):
        with self.assertRaises(InvalidInput):
            InventoryService.adjust_stock(None, 5)
        with self.assertRaises(NotFound):
            InventoryService.adjust_stock("00000000-0000-0000-0000-000000000000", 5)
        with self.assertRaises(NotFound):
            InventoryService.adjust_stock("not-a-uuid", 5)

    def test_failed_ledger_write_leaves_item_untouched(self):
        with mock.patch.object(StockMovement.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertRaises(InternalError):
                InventoryService.adjust_stock(self.item.id, 7)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 100)
        self.assertEqual(self.item.available_quantity, 90)
        self.assertEqual(self.item.version, 1)
        self.assertFalse(StockMovement.objects.exists())

    def test_quantity_ceiling(self):
        for bad in (MAX_QUANTITY + 1, 10 ** 20):
            with self.subTest(value=bad):
                with self.assertRaises(InvalidInput):
                    InventoryService.adjust_stock(self.item.id, bad)
        self.assertFalse(StockMovement.objects.exists())

        change = InventoryService.adjust_stock(self.item.id, MAX_QUANTITY)
        self.assertEqual(change.item.quantity, MAX_QUANTITY)
        self.assertEqual(change.movement.quantity, MAX_QUANTITY - 100)

    def test_item_is_read_inside_the_unit_of_work(self):
        depth = len(connection.savepoint_ids)
        seen = []
        real_fetch = services._fetch_item

        def tracking_fetch(pk):
            seen.append(len(connection.savepoint_ids))
            return real_fetch(pk)

        with mock.patch("apps.inventory.services._fetch_item", side_effect=tracking_fetch):
            InventoryService.adjust_stock(self.item.id, 70)
        self.assertEqual(seen, [depth + 1])

    def test_slow_operation_times_out_without_writing(self):
        with mock.patch.object(UnitOfWork, "clock", side_effect=[0.0, 10.0]):
            with self.assertRaises(Unavailable) as ctx:
                InventoryService.adjust_stock(self.item.id, 70)
        self.assertEqual(ctx.exception.code, "timeout")

        self.item.refresh_from_db()
        self.assertEqual((self.item.quantity, self.item.version), (100, 1))
        self.assertFalse(StockMovement.objects.exists())


class ConcurrencyTests(InventoryTestMixin, TestCase):
    """
    Interleavings are reproduced by handing the service a copy of the row
    read before another writer committed.
    """

    def test_stale_read_raises_conflict_without_writing(self):
        stale = fetch(self.item)
        InventoryService.adjust_stock(self.item.id, 120)

        with mock.patch("apps.inventory.services._fetch_item", return_value=stale):
            with self.assertRaises(Conflict) as ctx:
                InventoryService.adjust_stock(self.item.id, 80)
        self.assertTrue(ctx.exception.retryable)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 120)
        self.assertEqual(self.item.version, 2)
        self.assertEqual(StockMovement.objects.count(), 1)

    def test_retry_after_conflict_applies_against_fresh_state(self):
        stale = fetch(self.item)
        InventoryService.adjust_stock(self.item.id, 120)
        fresh = fetch(self.item)

        with mock.patch("apps.inventory.services._fetch_item", side_effect=[stale, fresh]):
            change = with_retry(
                InventoryService.adjust_stock, self.item.id, 80, backoff_ms=0
            )

        self.assertEqual(change.item.quantity, 80)
        self.assertEqual(change.item.version, 3)
        self.assertEqual((change.movement.quantity_before, change.movement.quantity_after), (120, 80))

    def test_two_writers_serialise_into_a_contiguous_ledger(self):
        first = fetch(self.item)
        second = fetch(self.item)

        with mock.patch("apps.inventory.services._fetch_item", return_value=first):
            InventoryService.record_movement(self.item.id, MovementType.RECEIPT, 5)
        with mock.patch("apps.inventory.services._fetch_item", side_effect=[second, fetch(self.item)]):
            with_retry(
                InventoryService.record_movement, self.item.id, MovementType.SHIPMENT, 3, backoff_ms=0
            )

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 102)
        entries = list(StockMovement.objects.order_by('id'))
        self.assertEqual(entries[0].quantity_after, entries[1].quantity_before)


class RecordMovementTests(InventoryTestMixin, TestCase):
    def test_inbound_and_outbound(self):
        receipt = InventoryService.record_movement(
            self.item.id, MovementType.RECEIPT, 25,
            reference_type="PURCHASE_ORDER", reference_id="PO-1", unit_cost=4,
        )
        self.assertEqual(receipt.item.quantity, 125)
        self.assertEqual(receipt.movement.total_cost, 100)

        shipment = InventoryService.record_movement(self.item.id, MovementType.SHIPMENT, 30)
        self.assertEqual(shipment.item.quantity, 95)
        self.assertEqual(shipment.item.available_quantity, 85)
        self.assertEqual((shipment.movement.quantity_before, shipment.movement.quantity_after), (125, 95))

    def test_outbound_cannot_go_negative(self):
        with self.assertRaises(InvalidInput) as ctx:
            InventoryService.record_movement(self.item.id, MovementType.DAMAGE, 101)
        self.assertEqual(ctx.exception.code, "insufficient_stock")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 100)
        self.assertFalse(StockMovement.objects.exists())

    def test_inbound_cannot_exceed_ceiling(self):
        InventoryItem.objects.filter(pk=self.item.pk).update(quantity=MAX_QUANTITY - 2)

        for qty in (3, 10 ** 20):
            with self.subTest(quantity=qty):
                with self.assertRaises(InvalidInput):
                    InventoryService.record_movement(self.item.id, MovementType.RECEIPT, qty)

        self.item.refresh_from_db()
        self.assertEqual((self.item.quantity, self.item.version), (MAX_QUANTITY - 2, 1))
        self.assertFalse(StockMovement.objects.exists())

        change = InventoryService.record_movement(self.item.id, MovementType.RETURN, 2)
        self.assertEqual(change.item.quantity, MAX_QUANTITY)

    def test_rejects_adjustment_unknown_type_and_zero(self):
        with self.assertRaises(InvalidInput):
            InventoryService.record_movement(self.item.id, MovementType.ADJUSTMENT, 5)
        with self.assertRaises(InvalidInput):
            InventoryService.record_movement(self.item.id, "TELEPORT", 5)
        with self.assertRaises(InvalidInput):
            InventoryService.record_movement(self.item.id, MovementType.RECEIPT, 0)

    def test_ledger_replays_to_current_quantity(self):
        InventoryService.record_movement(self.item.id, MovementType.RECEIPT, 10)
        InventoryService.record_movement(self.item.id, MovementType.SHIPMENT, 3)
        InventoryService.adjust_stock(self.item.id, 50)
        InventoryService.record_movement(self.item.id, MovementType.DAMAGE, 2)
        InventoryService.record_movement(self.item.id, MovementType.RETURN, 1)

        entries = list(StockMovement.objects.filter(inventory_item=self.item).order_by('id'))
        level = 100
        for mv in entries:
            self.assertEqual(mv.quantity_before, level)
            level += movements.signed_delta(mv.type, mv.quantity, mv.quantity_before, mv.quantity_after)
            self.assertEqual(mv.quantity_after, level)

        self.item.refresh_from_db()
        self.assertEqual(level, self.item.quantity)
        self.assertEqual(self.item.version, 1 + len(entries))


class LedgerImmutabilityTests(InventoryTestMixin, TestCase):
    def test_movements_cannot_be_changed_or_deleted(self):
        mv = InventoryService.adjust_stock(self.item.id, 10).movement

        mv.quantity = 999
        with self.assertRaises(ImmutableMovementError):
            mv.save()
        with self.assertRaises(ImmutableMovementError):
            mv.delete()

        mv.refresh_from_db()
        self.assertEqual(mv.quantity, 90)


class TransferStockTests(InventoryTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.destination = InventoryItem.objects.create(
            product=self.product, warehouse=self.other_warehouse, quantity=5
        )

    def test_transfer_moves_units_as_a_linked_pair(self):
        result = InventoryService.transfer_stock(self.item.id, self.destination.id, 40, actor_id="u-7")

        self.assertEqual(result.source.item.quantity, 60)
        self.assertEqual(result.destination.item.quantity, 45)
        self.assertEqual(result.source.movement.type, MovementType.TRANSFER_OUT)
        self.assertEqual(result.destination.movement.type, MovementType.TRANSFER_IN)
        self.assertEqual(result.source.movement.reference_id, result.reference_id)
        self.assertEqual(result.destination.movement.reference_id, result.reference_id)
        self.assertEqual(result.source.movement.reference_type, "TRANSFER")
        self.assertEqual(StockMovement.objects.filter(reference_id=result.reference_id).count(), 2)

    def test_insufficient_source_changes_nothing(self):
        with self.assertRaises(InvalidInput) as ctx:
            InventoryService.transfer_stock(self.item.id, self.destination.id, 101)
        self.assertEqual(ctx.exception.code, "insufficient_stock")
        self.assertFalse(StockMovement.objects.exists())

    def test_full_destination_changes_nothing(self):
        InventoryItem.objects.filter(pk=self.destination.pk).update(quantity=MAX_QUANTITY)

        with self.assertRaises(InvalidInput):
            InventoryService.transfer_stock(self.item.id, self.destination.id, 10)

        self.item.refresh_from_db()
        self.destination.refresh_from_db()
        self.assertEqual((self.item.quantity, self.item.version), (100, 1))
        self.assertEqual(self.destination.quantity, MAX_QUANTITY)
        self.assertFalse(StockMovement.objects.exists())

    def test_transfer_requires_matching_product_and_distinct_warehouses(self):
        other_product = Product.objects.create(sku="WM-001", name="Wireless Optical Mouse")
        mismatched = InventoryItem.objects.create(
            product=other_product, warehouse=self.other_warehouse, quantity=5
        )
        variant = ProductVariant.objects.create(product=self.product, sku="LPS-001-BLK", name="Black")
        same_warehouse = InventoryItem.objects.create(
            product=self.product, variant=variant, warehouse=self.warehouse, quantity=5
        )

        with self.assertRaises(InvalidInput):
            InventoryService.transfer_stock(self.item.id, mismatched.id, 1)
        with self.assertRaises(InvalidInput):
            InventoryService.transfer_stock(self.item.id, same_warehouse.id, 1)
        with self.assertRaises(InvalidInput):
            InventoryService.transfer_stock(self.item.id, self.item.id, 1)

    def test_failure_on_second_leg_rolls_back_first(self):
        real_create = StockMovement.objects.create
        calls = []

        def flaky_create(**kwargs):
            calls.append(kwargs["type"])
            if len(calls) == 2:
                raise DatabaseError("connection reset")
            return real_create(**kwargs)

        with mock.patch.object(StockMovement.objects, "create", side_effect=flaky_create):
            with self.assertRaises(InternalError):
                InventoryService.transfer_stock(self.item.id, self.destination.id, 10)

        self.item.refresh_from_db()
        self.destination.refresh_from_db()
        self.assertEqual((self.item.quantity, self.destination.quantity), (100, 5))
        self.assertFalse(StockMovement.objects.exists())


class StockAlertTests(TestCase):
    def setUp(self):
        self.warehouse = Warehouse.objects.create(name="Main Warehouse", code="WH-MAIN")

    def make_item(self, sku, quantity, **product_fields):
        product_fields.setdefault("min_stock_level", 10)
        product_fields.setdefault("max_stock_level", 100)
        product = Product.objects.create(sku=sku, name=sku, **product_fields)
        return InventoryItem.objects.create(product=product, warehouse=self.warehouse, quantity=quantity)

    def test_alert_types_and_priorities(self):
        out = self.make_item("OUT", 0)
        critical = self.make_item("CRIT", 4)
        low = self.make_item("LOW", 8)
        self.make_item("OK", 50)
        over = self.make_item("OVER", 150)

        alerts = {a.item.pk: a for a in InventoryService.stock_alerts()}

        self.assertEqual(len(alerts), 4)
        self.assertEqual((alerts[out.pk].type, alerts[out.pk].priority), ("OUT_OF_STOCK", "HIGH"))
        self.assertEqual((alerts[critical.pk].type, alerts[critical.pk].priority), ("LOW_STOCK", "HIGH"))
        self.assertEqual((alerts[low.pk].type, alerts[low.pk].priority), ("LOW_STOCK", "MEDIUM"))
        self.assertEqual(alerts[low.pk].threshold, 10)
        self.assertEqual((alerts[over.pk].type, alerts[over.pk].priority), ("OVERSTOCK", "LOW"))

    def test_untracked_inactive_and_expired_are_skipped(self):
        self.make_item("UNTRACKED", 0, track_inventory=False)
        self.make_item("ARCHIVED", 0, status=Product.Status.ARCHIVED)
        expired = self.make_item("EXPIRED", 0)
        expired.status = InventoryItem.Status.EXPIRED
        expired.save()

        self.assertEqual(InventoryService.stock_alerts(), [])

    def test_variant_threshold_overrides_product(self):
        product = Product.objects.create(sku="HUB", name="Hub", min_stock_level=5)
        variant = ProductVariant.objects.create(product=product, sku="HUB-XL", name="XL", min_stock_level=30)
        item = InventoryItem.objects.create(
            product=product, variant=variant, warehouse=self.warehouse, quantity=20
        )

        [alert] = InventoryService.stock_alerts(warehouse_id=self.warehouse.id)
        self.assertEqual(alert.item.pk, item.pk)
        self.assertEqual(alert.threshold, 30)


class ReconcileAvailableTests(InventoryTestMixin, TestCase):
    def test_drifted_available_is_repaired_without_ledger_entry(self):
        InventoryItem.objects.filter(pk=self.item.pk).update(available_quantity=7)

        fixed = InventoryService.reconcile_available()

        self.assertEqual(fixed, 1)
        self.item.refresh_from_db()
        self.assertEqual(self.item.available_quantity, 90)
        self.assertEqual(self.item.version, 2)
        self.assertFalse(StockMovement.objects.exists())
        self.assertEqual(InventoryService.reconcile_available(), 0)

    def test_scoped_to_warehouse(self):
        InventoryItem.objects.filter(pk=self.item.pk).update(available_quantity=7)
        self.assertEqual(InventoryService.reconcile_available(warehouse_id=self.other_warehouse.id), 0)
        self.assertEqual(InventoryService.reconcile_available(warehouse_id=self.warehouse.id), 1)
