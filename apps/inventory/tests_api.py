from unittest import mock

from django.contrib.auth import get_user_model
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.accounts.models import Company, CompanyMembership, Role
from apps.catalog.models import Product
from apps.inventory.models import MAX_QUANTITY, InventoryItem, MovementType, StockMovement
from apps.utils.exceptions import Unavailable
from apps.warehouse.models import Warehouse

User = get_user_model()


@override_settings(STOCK_RETRY_BACKOFF_MS=0)
class InventoryAPITestCase(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="ops", password="pass1234")
        company = Company.objects.create(name="Acme Supplies")
        CompanyMembership.objects.create(user=self.user, company=company, role=Role.MANAGER)
        self.client.force_authenticate(user=self.user)

        self.warehouse = Warehouse.objects.create(name="Main Warehouse", code="WH-MAIN")
        self.other_warehouse = Warehouse.objects.create(name="Distribution Center", code="WH-DIST")
        self.stand = Product.objects.create(sku="LPS-001", name="Premium Laptop Stand", min_stock_level=20)
        self.mouse = Product.objects.create(sku="WM-001", name="Wireless Optical Mouse", min_stock_level=50)

        self.stand_main = InventoryItem.objects.create(
            product=self.stand, warehouse=self.warehouse, quantity=125, location_code="A-1-5-B"
        )
        self.stand_dist = InventoryItem.objects.create(
            product=self.stand, warehouse=self.other_warehouse, quantity=75, reserved_quantity=5
        )
        self.mouse_main = InventoryItem.objects.create(
            product=self.mouse, warehouse=self.warehouse, quantity=8, reserved_quantity=3
        )

        self.stock_url = reverse('inventory-stock')
        self.movements_url = reverse('inventory-movements')
        self.transfers_url = reverse('inventory-transfers')
        self.alerts_url = reverse('inventory-alerts')


class StockListTests(InventoryAPITestCase):
    def test_list_is_paginated(self):
        res = self.client.get(self.stock_url, {"limit": 2})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["stockItems"]), 2)
        self.assertEqual(res.data["pagination"], {"page": 1, "limit": 2, "total": 3, "pages": 2})

        row = res.data["stockItems"][0]
        for key in ("availableQuantity", "reservedQuantity", "stockLevel", "product", "warehouse", "version"):
            self.assertIn(key, row)

    def test_filters(self):
        res = self.client.get(self.stock_url, {"warehouseId": str(self.other_warehouse.id)})
        self.assertEqual([r["id"] for r in res.data["stockItems"]], [str(self.stand_dist.id)])

        res = self.client.get(self.stock_url, {"search": "mouse"})
        self.assertEqual([r["id"] for r in res.data["stockItems"]], [str(self.mouse_main.id)])

        res = self.client.get(self.stock_url, {"search": "A-1-5"})
        self.assertEqual([r["id"] for r in res.data["stockItems"]], [str(self.stand_main.id)])

    def test_alerts_only(self):
        res = self.client.get(self.stock_url, {"alertsOnly": "true"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([r["id"] for r in res.data["stockItems"]], [str(self.mouse_main.id)])
        self.assertEqual(res.data["stockItems"][0]["stockLevel"], "LOW_STOCK")

    def test_page_out_of_range(self):
        res = self.client.get(self.stock_url, {"page": 99})
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["code"], "not_found")
        self.assertNotIn("detail", res.data)

    def test_invalid_query(self):
        res = self.client.get(self.stock_url, {"warehouseId": "nope"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_input")


class StockAdjustmentTests(InventoryAPITestCase):
    def test_adjust(self):
        res = self.client.post(
            self.stock_url,
            {"inventoryItemId": str(self.stand_main.id), "newQuantity": 100, "reason": "Cycle count"},
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["updatedItem"]["quantity"], 100)
        self.assertEqual(res.data["updatedItem"]["availableQuantity"], 100)

        movement = res.data["movement"]
        self.assertEqual(movement["type"], MovementType.ADJUSTMENT)
        self.assertEqual(movement["quantity"], 25)
        self.assertEqual((movement["quantityBefore"], movement["quantityAfter"]), (125, 100))
        self.assertEqual(movement["userId"], str(self.user.pk))

    def test_authenticated_user_wins_over_payload_user(self):
        res = self.client.post(
            self.stock_url,
            {"inventoryItemId": str(self.stand_main.id), "newQuantity": 1, "userId": "someone-else"},
            format='json',
        )
        self.assertEqual(res.data["movement"]["userId"], str(self.user.pk))

    def test_validation_errors(self):
        cases = [
            {"newQuantity": 5},
            {"inventoryItemId": str(self.stand_main.id)},
            {"inventoryItemId": str(self.stand_main.id), "newQuantity": -1},
            {"inventoryItemId": str(self.stand_main.id), "newQuantity": "lots"},
        ]
        for body in cases:
            with self.subTest(body=body):
                res = self.client.post(self.stock_url, body, format='json')
                self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(res.data["code"], "invalid_input")
        self.assertFalse(StockMovement.objects.exists())

    def test_oversized_quantity_is_rejected(self):
        for qty in (MAX_QUANTITY + 1, 10 ** 20):
            with self.subTest(newQuantity=qty):
                res = self.client.post(
                    self.stock_url,
                    {"inventoryItemId": str(self.stand_main.id), "newQuantity": qty},
                    format='json',
                )
                self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(res.data["code"], "invalid_input")
                self.assertIn("newQuantity", res.data["details"])
        self.stand_main.refresh_from_db()
        self.assertEqual(self.stand_main.quantity, 125)
        self.assertFalse(StockMovement.objects.exists())

    def test_unknown_item(self):
        res = self.client.post(
            self.stock_url,
            {"inventoryItemId": "00000000-0000-0000-0000-000000000000", "newQuantity": 5},
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["code"], "not_found")

    @override_settings(STOCK_RETRY_ATTEMPTS=2)
    def test_persistent_conflict_is_409(self):
        stale = InventoryItem.objects.select_related('product', 'variant', 'warehouse').get(pk=self.stand_main.pk)
        InventoryItem.objects.filter(pk=self.stand_main.pk).update(version=5)

        with mock.patch("apps.inventory.services._fetch_item", return_value=stale) as fetch:
            res = self.client.post(
                self.stock_url,
                {"inventoryItemId": str(self.stand_main.id), "newQuantity": 5},
                format='json',
            )
        self.assertEqual(fetch.call_count, 2)
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "conflict")
        self.assertTrue(res.data["retryable"])
        self.assertFalse(StockMovement.objects.exists())

    def test_unavailable_is_503(self):
        with mock.patch("apps.inventory.services._fetch_item", side_effect=Unavailable("Database is unavailable.")):
            res = self.client.post(
                self.stock_url,
                {"inventoryItemId": str(self.stand_main.id), "newQuantity": 5},
                format='json',
            )
        self.assertEqual(res.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertTrue(res.data["retryable"])


class MovementEndpointTests(InventoryAPITestCase):
    def test_record_and_list(self):
        res = self.client.post(
            self.movements_url,
            {
                "inventoryItemId": str(self.mouse_main.id),
                "type": MovementType.RECEIPT,
                "quantity": 42,
                "referenceType": "PURCHASE_ORDER",
                "referenceId": "PO-2024-001",
                "unitCost": "15.99",
            },
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["updatedItem"]["quantity"], 50)
        self.assertEqual(res.data["updatedItem"]["availableQuantity"], 47)

        self.client.post(
            self.movements_url,
            {"inventoryItemId": str(self.stand_main.id), "type": MovementType.SHIPMENT, "quantity": 5},
            format='json',
        )

        res = self.client.get(self.movements_url, {"inventoryItemId": str(self.mouse_main.id)})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["movements"]), 1)
        self.assertEqual(res.data["movements"][0]["referenceId"], "PO-2024-001")

        res = self.client.get(self.movements_url, {"type": MovementType.SHIPMENT})
        self.assertEqual(len(res.data["movements"]), 1)

        res = self.client.get(self.movements_url, {"limit": 1})
        self.assertEqual(len(res.data["movements"]), 1)

    def test_adjustment_type_rejected(self):
        res = self.client.post(
            self.movements_url,
            {"inventoryItemId": str(self.mouse_main.id), "type": MovementType.ADJUSTMENT, "quantity": 1},
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_insufficient_stock(self):
        res = self.client.post(
            self.movements_url,
            {"inventoryItemId": str(self.mouse_main.id), "type": MovementType.SHIPMENT, "quantity": 9},
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "insufficient_stock")

    def test_oversized_and_overflowing_receipts(self):
        res = self.client.post(
            self.movements_url,
            {"inventoryItemId": str(self.mouse_main.id), "type": MovementType.RECEIPT, "quantity": 10 ** 20},
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("quantity", res.data["details"])

        res = self.client.post(
            self.movements_url,
            {"inventoryItemId": str(self.mouse_main.id), "type": MovementType.RECEIPT, "quantity": MAX_QUANTITY},
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_input")
        self.mouse_main.refresh_from_db()
        self.assertEqual(self.mouse_main.quantity, 8)
        self.assertFalse(StockMovement.objects.exists())


class TransferEndpointTests(InventoryAPITestCase):
    def test_transfer(self):
        res = self.client.post(
            self.transfers_url,
            {
                "sourceItemId": str(self.stand_main.id),
                "destinationItemId": str(self.stand_dist.id),
                "quantity": 25,
            },
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["source"]["updatedItem"]["quantity"], 100)
        self.assertEqual(res.data["destination"]["updatedItem"]["quantity"], 100)
        self.assertEqual(res.data["source"]["movement"]["referenceId"], res.data["referenceId"])

    def test_oversized_quantity_is_rejected(self):
        res = self.client.post(
            self.transfers_url,
            {
                "sourceItemId": str(self.stand_main.id),
                "destinationItemId": str(self.stand_dist.id),
                "quantity": 10 ** 20,
            },
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_input")
        self.assertFalse(StockMovement.objects.exists())

    def test_same_item_rejected(self):
        res = self.client.post(
            self.transfers_url,
            {
                "sourceItemId": str(self.stand_main.id),
                "destinationItemId": str(self.stand_main.id),
                "quantity": 1,
            },
            format='json',
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)


class AlertEndpointTests(InventoryAPITestCase):
    def test_alerts(self):
        res = self.client.get(self.alerts_url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["alerts"]), 1)
        alert = res.data["alerts"][0]
        self.assertEqual(alert["type"], "LOW_STOCK")
        self.assertEqual(alert["priority"], "HIGH")
        self.assertEqual(alert["inventoryItemId"], str(self.mouse_main.id))


class AccessTests(InventoryAPITestCase):
    def test_anonymous_rejected(self):
        self.client.force_authenticate(user=None)
        res = self.client.get(self.stock_url)
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(res.data["code"], "not_authenticated")
        self.assertIn("error", res.data)
        self.assertNotIn("detail", res.data)

    def test_user_without_membership_forbidden(self):
        outsider = User.objects.create_user(username="outsider", password="pass1234")
        self.client.force_authenticate(user=outsider)
        for url in (self.stock_url, self.movements_url, self.alerts_url):
            with self.subTest(url=url):
                res = self.client.get(url)
                self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
                self.assertEqual(res.data["code"], "permission_denied")

    def test_inactive_company_forbidden(self):
        Company.objects.update(is_active=False)
        self.assertEqual(self.client.get(self.stock_url).status_code, status.HTTP_403_FORBIDDEN)
