"""
Procurement — Views

DRF ViewSet for purchase orders: create, list, retrieve and the workflow
actions (submit, receive, receive-all, cancel). Movements list for an order.

@file procurement/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from stock.serializers import StockMovementReadSerializer
from users.permissions import CanCancelOrder, CanManageOrders

from .models import PurchaseOrder
from .serializers import (
    CancelOrderSerializer,
    PurchaseOrderReadSerializer,
    PurchaseOrderWriteSerializer,
    ReceiveOrderSerializer,
)
from .services import PurchaseOrderService, ReceivingService


class PurchaseOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Purchase orders: list (?status=, ?supplier=), create, retrieve.
    Workflow: submit, receive, receive-all, cancel. No update or delete:
    an order changes only through its transitions.
    """

    permission_classes = [IsAuthenticated, CanManageOrders]
    filterset_fields = ['status', 'supplier']
    search_fields = ['order_number', 'supplier__name']
    ordering_fields = ['created_at', 'ordered_at', 'expected_delivery_date', 'total_amount', 'status']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            PurchaseOrder.objects.filter(is_deleted=False)
            .select_related('supplier')
            .prefetch_related('lines__item')
        )

    def get_serializer_class(self):
        if self.action == 'create':
            return PurchaseOrderWriteSerializer
        if self.action == 'receive':
            return ReceiveOrderSerializer
        if self.action == 'cancel':
            return CancelOrderSerializer
        return PurchaseOrderReadSerializer

    def _respond(self, order, status_code=status.HTTP_200_OK):
        order = PurchaseOrderService.get_order(order.pk)
        return Response(
            PurchaseOrderReadSerializer(order, context={'request': self.request}).data,
            status=status_code,
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = PurchaseOrderService.create_order(
            supplier_id=data['supplier_id'],
            lines=[dict(line) for line in data['lines']],
            as_draft=data['as_draft'],
            notes=data.get('notes', ''),
            actor=request.user,
        )
        return self._respond(order, status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='pending')
    def pending(self, request):
        orders = PurchaseOrderService.pending_orders()
        return Response(PurchaseOrderReadSerializer(orders, many=True).data)

    @action(detail=False, methods=['get'], url_path='recent')
    def recent(self, request):
        try:
            limit = max(1, min(int(request.query_params.get('limit', 10)), 50))
        except ValueError:
            limit = 10
        orders = PurchaseOrderService.recent_orders(limit=limit)
        return Response(PurchaseOrderReadSerializer(orders, many=True).data)

    @action(detail=True, methods=['post'], url_path='submit')
    def submit(self, request, pk=None):
        order = PurchaseOrderService.submit_order(order_id=pk, actor=request.user)
        return self._respond(order)

    @action(detail=True, methods=['post'], url_path='receive')
    def receive(self, request, pk=None):
        ser = ReceiveOrderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        receipts = [
            {key: value for key, value in dict(receipt).items() if value not in (None, '')}
            for receipt in ser.validated_data['receipts']
        ]
        order = ReceivingService.receive(order_id=pk, receipts=receipts, actor=request.user)
        return self._respond(order)

    @action(detail=True, methods=['post'], url_path='receive-all', url_name='receive-all')
    def receive_all(self, request, pk=None):
        order = ReceivingService.receive_remaining(order_id=pk, actor=request.user)
        return self._respond(order)

    @action(
        detail=True, methods=['post'], url_path='cancel',
        permission_classes=[IsAuthenticated, CanCancelOrder],
    )
    def cancel(self, request, pk=None):
        ser = CancelOrderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = PurchaseOrderService.cancel_order(
            order_id=pk, actor=request.user, reason=ser.validated_data.get('reason', ''),
        )
        return self._respond(order)

    @action(detail=True, methods=['get'], url_path='movements')
    def movements(self, request, pk=None):
        order = self.get_object()
        qs = order.movements.select_related('item', 'batch', 'created_by').order_by('created_at', 'sequence')
        return Response(StockMovementReadSerializer(qs, many=True).data)
