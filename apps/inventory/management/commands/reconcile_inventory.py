from django.core.management.base import BaseCommand
from apps.warehouse.models import Warehouse
from apps.inventory.services import InventoryService


class Command(BaseCommand):
    help = "Repairs InventoryItem.available_quantity where it drifted from max(0, quantity - reserved)"

    def add_arguments(self, parser):
        parser.add_argument(
            '--warehouse',
            help='Warehouse code to limit the run to (default: all active warehouses)'
        )

    def handle(self, *args, **options):
        self.stdout.write("Starting Inventory Reconciliation...")

        warehouses = Warehouse.objects.filter(is_active=True)
        if options.get('warehouse'):
            warehouses = warehouses.filter(code=options['warehouse'])
            if not warehouses.exists():
                self.stdout.write(self.style.ERROR(f"No active warehouse with code {options['warehouse']}"))
                return

        fixed_count = 0
        for wh in warehouses:
            fixed = InventoryService.reconcile_available(warehouse_id=wh.id)
            if fixed:
                self.stdout.write(self.style.WARNING(f"{wh.code}: fixed {fixed} item(s)"))
            fixed_count += fixed

        self.stdout.write(self.style.SUCCESS(f"Reconciliation Complete. Fixed {fixed_count} discrepancies."))
