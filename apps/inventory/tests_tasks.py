from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase

from apps.catalog.models import Product
from apps.inventory import tasks
from apps.inventory.models import InventoryItem, MovementType, StockMovement
from apps.warehouse.models import Warehouse


class ReconciliationTaskTests(TestCase):
    def setUp(self):
        self.warehouse = Warehouse.objects.create(name="Main Warehouse", code="WH-MAIN")
        Warehouse.objects.create(name="Closed Depot", code="WH-OLD", is_active=False)
        self.product = Product.objects.create(sku="WM-001", name="Wireless Optical Mouse", min_stock_level=50)
        self.item = InventoryItem.objects.create(
            product=self.product, warehouse=self.warehouse, quantity=8, reserved_quantity=3
        )

    def test_master_task_fans_out_per_active_warehouse(self):
        with mock.patch("apps.inventory.tasks.run_warehouse_reconciliation") as worker:
            result = tasks.run_reconciliation()
        worker.delay.assert_called_once_with(str(self.warehouse.id))
        self.assertIn("1 warehouses", result)

    def test_worker_task_repairs_drift(self):
        InventoryItem.objects.filter(pk=self.item.pk).update(available_quantity=0)
        result = tasks.run_warehouse_reconciliation(str(self.warehouse.id))
        self.assertIn("Fixed 1", result)
        self.item.refresh_from_db()
        self.assertEqual(self.item.available_quantity, 5)

    def test_scan_stock_alerts(self):
        with self.assertLogs("apps.inventory.tasks", level="WARNING"):
            summary = tasks.scan_stock_alerts()
        self.assertEqual(summary, {"LOW_STOCK": 1})


class CommandTests(TestCase):
    def test_seed_inventory_writes_opening_stock_through_ledger(self):
        out = StringIO()
        call_command("seed_inventory", stdout=out)
        self.assertIn("Created 5", out.getvalue())

        self.assertEqual(InventoryItem.objects.count(), 5)
        receipts = StockMovement.objects.filter(type=MovementType.RECEIPT, reference_type="SEED")
        self.assertEqual(receipts.count(), 4)

        mouse = InventoryItem.objects.get(product__sku="WM-001", warehouse__code="WH-MAIN")
        self.assertEqual((mouse.quantity, mouse.available_quantity), (8, 5))

        # Re-running leaves existing stock alone
        call_command("seed_inventory", stdout=StringIO())
        self.assertEqual(StockMovement.objects.count(), 4)

    def test_reconcile_inventory(self):
        call_command("seed_inventory", stdout=StringIO())
        InventoryItem.objects.filter(warehouse__code="WH-DIST").update(available_quantity=0)

        out = StringIO()
        call_command("reconcile_inventory", "--warehouse", "WH-DIST", stdout=out)
        self.assertIn("Fixed 2", out.getvalue())
        self.assertFalse(
            InventoryItem.objects.filter(warehouse__code="WH-DIST", available_quantity=0).exists()
        )

        out = StringIO()
        call_command("reconcile_inventory", "--warehouse", "NOPE", stdout=out)
        self.assertIn("No active warehouse", out.getvalue())
