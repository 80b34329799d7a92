import logging
from celery import shared_task
from apps.warehouse.models import Warehouse
from .services import InventoryService

logger = logging.getLogger(__name__)


@shared_task
def run_reconciliation():
    """
    MASTER TASK:
    Spawns one reconciliation per active warehouse so no single
    transaction spans the whole estate.
    """
    warehouse_ids = Warehouse.objects.filter(is_active=True).values_list('id', flat=True)
    count = 0
    for w_id in warehouse_ids:
        run_warehouse_reconciliation.delay(str(w_id))
        count += 1
    return f"Triggered reconciliation for {count} warehouses"


@shared_task(time_limit=600)
def run_warehouse_reconciliation(warehouse_id):
    """
    WORKER TASK:
    Repairs drifted available quantities for a SINGLE warehouse.
    """
    logger.info(f"Reconciling Warehouse {warehouse_id}...")
    fixed = InventoryService.reconcile_available(warehouse_id=warehouse_id)
    return f"WH {warehouse_id}: Reconciled. Fixed {fixed} mismatches."


@shared_task
def scan_stock_alerts():
    alerts = InventoryService.stock_alerts()
    summary = {}
    for alert in alerts:
        summary[alert.type] = summary.get(alert.type, 0) + 1
        if alert.priority == "HIGH":
            logger.warning(
                f"{alert.type} {alert.item.sku}@{alert.item.warehouse.code}: "
                f"level={alert.current_level} threshold={alert.threshold}",
                extra={"inventory_item_id": alert.item.pk},
            )
    return summary
