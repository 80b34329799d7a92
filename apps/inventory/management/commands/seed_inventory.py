from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction
from apps.catalog.models import Brand, Category, Product, Supplier
from apps.warehouse.models import Warehouse
from apps.inventory.models import InventoryItem, MovementType
from apps.inventory.services import InventoryService

CATEGORIES = [
    # (name, parent name, description)
    ("Electronics", None, "Electronic devices and components"),
    ("Computer Accessories", "Electronics", "Accessories for computers and laptops"),
    ("Office Supplies", None, "General office and business supplies"),
]

BRANDS = [
    ("TechPro", "https://techpro.com"),
    ("OfficeMax", "https://officemax.com"),
]

SUPPLIERS = [
    {"name": "TechSupply Pro", "code": "TSP-001", "contact_name": "John Smith",
     "email": "orders@techsupplypro.com", "payment_terms": "NET30", "lead_time_days": 14},
    {"name": "Global Office Solutions", "code": "GOS-001", "contact_name": "Sarah Johnson",
     "email": "sales@globaloffice.com", "payment_terms": "NET15", "lead_time_days": 7},
]

WAREHOUSES = [
    {"name": "Main Warehouse", "code": "WH-MAIN", "type": Warehouse.WarehouseType.MAIN,
     "address": "123 Industrial Blvd", "city": "San Francisco", "state": "CA", "country": "United States"},
    {"name": "Distribution Center", "code": "WH-DIST", "type": Warehouse.WarehouseType.BRANCH,
     "address": "456 Logistics Ave", "city": "Los Angeles", "state": "CA", "country": "United States"},
]

PRODUCTS = [
    {"sku": "LPS-001", "name": "Premium Laptop Stand", "cost_price": Decimal("45.99"),
     "selling_price": Decimal("89.99"), "min_stock_level": 20, "reorder_point": 30, "max_stock_level": 200},
    {"sku": "WM-001", "name": "Wireless Optical Mouse", "cost_price": Decimal("15.99"),
     "selling_price": Decimal("29.99"), "min_stock_level": 50, "reorder_point": 75, "max_stock_level": 500},
    {"sku": "UCH-001", "name": "USB-C Multi-Port Hub", "cost_price": Decimal("25.99"),
     "selling_price": Decimal("49.99"), "min_stock_level": 30, "reorder_point": 45, "max_stock_level": 300},
]

# (product sku, warehouse code, on-hand, reserved, location)
STOCK = [
    ("LPS-001", "WH-MAIN", 125, 0, "A-1-5-B"),
    ("LPS-001", "WH-DIST", 75, 5, "B-2-3-A"),
    ("WM-001", "WH-MAIN", 8, 3, "A-2-1-C"),
    ("UCH-001", "WH-MAIN", 0, 0, "A-3-2-A"),
    ("UCH-001", "WH-DIST", 60, 10, "B-1-4-D"),
]


class Command(BaseCommand):
    help = "Seed demo catalogue, warehouses and opening stock (written through the ledger)"

    def handle(self, *args, **options):
        with transaction.atomic():
            categories = {}
            for name, parent, description in CATEGORIES:
                categories[name], _ = Category.objects.get_or_create(
                    name=name,
                    parent=categories.get(parent),
                    defaults={"description": description},
                )

            brands = {}
            for name, website in BRANDS:
                brands[name], _ = Brand.objects.get_or_create(name=name, defaults={"website": website})

            suppliers = {}
            for data in SUPPLIERS:
                suppliers[data["code"]], _ = Supplier.objects.get_or_create(code=data["code"], defaults=data)

            warehouses = {}
            for data in WAREHOUSES:
                warehouses[data["code"]], _ = Warehouse.objects.get_or_create(code=data["code"], defaults=data)

            products = {}
            for data in PRODUCTS:
                products[data["sku"]], _ = Product.objects.get_or_create(
                    sku=data["sku"],
                    defaults={
                        **data,
                        "category": categories["Computer Accessories"],
                        "brand": brands["TechPro"],
                        "supplier": suppliers["TSP-001"],
                    },
                )

            created = 0
            for sku, wh_code, on_hand, reserved, location in STOCK:
                item, was_created = InventoryItem.objects.get_or_create(
                    product=products[sku],
                    variant=None,
                    warehouse=warehouses[wh_code],
                    defaults={"reserved_quantity": reserved, "location_code": location},
                )
                if not was_created:
                    continue
                created += 1
                if on_hand:
                    InventoryService.record_movement(
                        item.id,
                        MovementType.RECEIPT,
                        on_hand,
                        reason="Opening stock",
                        reference_type="SEED",
                        unit_cost=products[sku].cost_price,
                    )

        self.stdout.write(self.style.SUCCESS(f"Inventory seeded. Created {created} inventory item(s)."))
