import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('warehouse', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('quantity', models.IntegerField(default=0)),
                ('reserved_quantity', models.IntegerField(default=0)),
                ('available_quantity', models.IntegerField(default=0)),
                ('status', models.CharField(choices=[('AVAILABLE', 'Available'), ('RESERVED', 'Reserved'), ('QUARANTINE', 'Quarantine'), ('DAMAGED', 'Damaged'), ('EXPIRED', 'Expired')], default='AVAILABLE', max_length=20)),
                ('location_code', models.CharField(blank=True, max_length=50)),
                ('last_movement_at', models.DateTimeField(blank=True, null=True)),
                ('last_count_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inventory_items', to='catalog.product')),
                ('variant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='inventory_items', to='catalog.productvariant')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inventory_items', to='warehouse.warehouse')),
            ],
            options={
                'verbose_name': 'Inventory Item',
                'indexes': [
                    models.Index(fields=['warehouse', 'product'], name='inv_item_wh_product_idx'),
                    models.Index(fields=['status'], name='inv_item_status_idx'),
                    models.Index(fields=['last_movement_at'], name='inv_item_last_movement_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'variant', 'warehouse'), name='uniq_inventory_item_product_variant_warehouse'),
                    models.UniqueConstraint(condition=models.Q(('variant__isnull', True)), fields=('product', 'warehouse'), name='uniq_inventory_item_product_warehouse_no_variant'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='inventory_item_quantity_non_negative'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity__gte', 0)), name='inventory_item_reserved_non_negative'),
                    models.CheckConstraint(condition=models.Q(('available_quantity__gte', 0)), name='inventory_item_available_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('RECEIPT', 'Receipt'), ('SHIPMENT', 'Shipment'), ('ADJUSTMENT', 'Adjustment'), ('TRANSFER_OUT', 'Transfer Out'), ('TRANSFER_IN', 'Transfer In'), ('RETURN', 'Return'), ('DAMAGE', 'Damage')], max_length=20)),
                ('quantity', models.PositiveIntegerField()),
                ('quantity_before', models.IntegerField()),
                ('quantity_after', models.IntegerField()),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('reference_type', models.CharField(blank=True, max_length=50)),
                ('reference_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('actor_id', models.CharField(default='system', max_length=100)),
                ('occurred_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('inventory_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.inventoryitem')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='catalog.product')),
                ('variant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='catalog.productvariant')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='warehouse.warehouse')),
            ],
            options={
                'ordering': ['-occurred_at', '-id'],
                'indexes': [
                    models.Index(fields=['inventory_item', 'id'], name='stock_mvmt_item_id_idx'),
                    models.Index(fields=['warehouse', 'type'], name='stock_mvmt_wh_type_idx'),
                ],
            },
        ),
    ]
