"""
Stock — Views

Read-only ledger listing, the write endpoints that drive the ledger
(adjust, dispense, return), alerts, the dashboard summary and physical
count sessions.

@file stock/views.py
"""

from django.db.models import Count
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from users.permissions import CanMoveStock

from .alerts import AlertService
from .models import InventorySession, StockMovement
from .repository import InventoryRepository
from .serializers import (
    AdjustStockSerializer,
    AlertSerializer,
    DispenseSerializer,
    InventorySessionReadSerializer,
    InventorySessionWriteSerializer,
    ReturnSerializer,
    StockMovementReadSerializer,
)
from .services import DispenseService, PhysicalInventoryService


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """The ledger. No create/update/delete: movements come from the services only."""

    serializer_class = StockMovementReadSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['item', 'batch', 'movement_type', 'reason_code', 'related_order', 'inventory_session']
    search_fields = ['item__name', 'item__code', 'note']
    ordering_fields = ['created_at', 'sequence', 'quantity_delta']
    ordering = ['-created_at', '-sequence']

    def get_queryset(self):
        return StockMovement.objects.select_related('item', 'batch', 'created_by', 'related_order')


class AdjustStockView(APIView):
    """
    POST /stock/adjust/ — physical count of one item.

    201 with the adjustment movement, or 200 with data=null when the count
    matches the recorded balance.
    """

    permission_classes = [IsAuthenticated, CanMoveStock]

    def post(self, request):
        ser = AdjustStockSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        movement = PhysicalInventoryService.reconcile(
            item_id=data['item_id'],
            counted_quantity=data['real_quantity'],
            reason_code=data.get('reason_code') or None,
            batch_id=data.get('batch_id'),
            session_id=data.get('session_id'),
            note=data.get('note', ''),
            actor=request.user,
        )
        if movement is None:
            return Response({'success': True, 'data': None, 'message': 'Count matches; no adjustment recorded.'})
        return Response(StockMovementReadSerializer(movement).data, status=status.HTTP_201_CREATED)


class DispenseView(APIView):
    permission_classes = [IsAuthenticated, CanMoveStock]

    def post(self, request):
        ser = DispenseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        movements = DispenseService.dispense(actor=request.user, **ser.validated_data)
        return Response(
            StockMovementReadSerializer(movements, many=True).data,
            status=status.HTTP_201_CREATED,
        )


class ReturnView(APIView):
    permission_classes = [IsAuthenticated, CanMoveStock]

    def post(self, request):
        ser = ReturnSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        movement = DispenseService.return_stock(actor=request.user, **ser.validated_data)
        return Response(StockMovementReadSerializer(movement).data, status=status.HTTP_201_CREATED)


class AlertListView(APIView):
    """GET /stock/alerts/ — expiry and low-stock alerts, most urgent first."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        alerts = AlertService.scan()
        return Response(AlertSerializer([a.to_dict() for a in alerts], many=True).data)


class StockSummaryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        summary = InventoryRepository.summary()
        summary['alert_count'] = len(AlertService.scan())
        return Response(summary)


class InventorySessionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Physical count sessions: open, then validate or cancel."""

    permission_classes = [IsAuthenticated, CanMoveStock]
    filterset_fields = ['status']
    ordering = ['-opened_at']

    def get_queryset(self):
        return (
            InventorySession.objects.filter(is_deleted=False)
            .select_related('responsible')
            .annotate(adjustment_count=Count('movements'))
        )

    def get_serializer_class(self):
        if self.action == 'create':
            return InventorySessionWriteSerializer
        return InventorySessionReadSerializer

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        session = PhysicalInventoryService.open_session(actor=request.user, **ser.validated_data)
        return Response(InventorySessionReadSerializer(session).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='validate', url_name='validate')
    def validate_session(self, request, pk=None):
        session = PhysicalInventoryService.validate_session(session_id=pk, actor=request.user)
        return Response(InventorySessionReadSerializer(session).data)

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        session = PhysicalInventoryService.cancel_session(session_id=pk, actor=request.user)
        return Response(InventorySessionReadSerializer(session).data)
