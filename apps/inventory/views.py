from django.db.models import F
from django_filters.utils import translate_validation
from rest_framework import status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.accounts.permissions import HasCompanyAccess
from apps.utils.pagination import StandardResultsSetPagination
from apps.utils.resilience import with_retry

from .filters import InventoryItemFilter, StockMovementFilter
from .models import InventoryItem, StockMovement
from .serializers import (
    AlertQuerySerializer,
    InventoryItemSerializer,
    MovementQuerySerializer,
    StockAdjustmentSerializer,
    StockAlertSerializer,
    StockMovementCreateSerializer,
    StockMovementSerializer,
    StockTransferSerializer,
)
from .services import InventoryService, SYSTEM_ACTOR


def resolve_actor(request, payload):
    """Authenticated user first, then the caller-supplied userId."""
    if request.user and request.user.is_authenticated:
        return str(request.user.pk)
    return payload.get('userId') or SYSTEM_ACTOR


def filter_queryset(filterset_class, request, queryset):
    filterset = filterset_class(request.query_params, queryset=queryset, request=request)
    if not filterset.is_valid():
        raise translate_validation(filterset.errors)
    return filterset.qs


class StockPagination(StandardResultsSetPagination):
    results_key = "stockItems"


class StockView(views.APIView):
    """
    GET  -> paginated stock items joined with product/variant/warehouse.
    POST -> adjust one item to an absolute quantity.
    """
    permission_classes = [IsAuthenticated, HasCompanyAccess]

    def get(self, request):
        qs = filter_queryset(
            InventoryItemFilter,
            request,
            InventoryItem.objects.select_related('product', 'variant', 'warehouse'),
        ).order_by(F('last_movement_at').desc(nulls_last=True), '-created_at')

        paginator = StockPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        data = InventoryItemSerializer(page, many=True).data
        return paginator.get_paginated_response(data)

    def post(self, request):
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        d = serializer.validated_data
        # Absolute target: re-running after a Conflict cannot double-apply
        change = with_retry(
            InventoryService.adjust_stock,
            inventory_item_id=d['inventoryItemId'],
            new_quantity=d['newQuantity'],
            reason=d.get('reason'),
            notes=d.get('notes', ''),
            actor_id=resolve_actor(request, d),
        )
        return Response(
            {
                "updatedItem": InventoryItemSerializer(change.item).data,
                "movement": StockMovementSerializer(change.movement).data,
            },
            status=status.HTTP_200_OK,
        )


class StockMovementView(views.APIView):
    permission_classes = [IsAuthenticated, HasCompanyAccess]

    def get(self, request):
        query = MovementQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        qs = filter_queryset(StockMovementFilter, request, StockMovement.objects.all())
        data = StockMovementSerializer(qs[:query.validated_data['limit']], many=True).data
        return Response({"movements": data})

    def post(self, request):
        serializer = StockMovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        d = serializer.validated_data
        change = InventoryService.record_movement(
            inventory_item_id=d['inventoryItemId'],
            movement_type=d['type'],
            quantity=d['quantity'],
            reason=d.get('reason', ''),
            notes=d.get('notes', ''),
            reference_type=d.get('referenceType', ''),
            reference_id=d.get('referenceId', ''),
            unit_cost=d.get('unitCost'),
            actor_id=resolve_actor(request, d),
        )
        return Response(
            {
                "updatedItem": InventoryItemSerializer(change.item).data,
                "movement": StockMovementSerializer(change.movement).data,
            },
            status=status.HTTP_201_CREATED,
        )


class StockTransferView(views.APIView):
    permission_classes = [IsAuthenticated, HasCompanyAccess]

    def post(self, request):
        serializer = StockTransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        d = serializer.validated_data
        result = InventoryService.transfer_stock(
            source_item_id=d['sourceItemId'],
            destination_item_id=d['destinationItemId'],
            quantity=d['quantity'],
            reason=d.get('reason', ''),
            notes=d.get('notes', ''),
            actor_id=resolve_actor(request, d),
        )
        return Response(
            {
                "referenceId": result.reference_id,
                "source": {
                    "updatedItem": InventoryItemSerializer(result.source.item).data,
                    "movement": StockMovementSerializer(result.source.movement).data,
                },
                "destination": {
                    "updatedItem": InventoryItemSerializer(result.destination.item).data,
                    "movement": StockMovementSerializer(result.destination.movement).data,
                },
            },
            status=status.HTTP_201_CREATED,
        )


class StockAlertView(views.APIView):
    permission_classes = [IsAuthenticated, HasCompanyAccess]

    def get(self, request):
        query = AlertQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        alerts = InventoryService.stock_alerts(warehouse_id=query.validated_data.get('warehouseId'))
        return Response({"alerts": StockAlertSerializer(alerts, many=True).data})
