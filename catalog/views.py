"""
Catalog — Views

DRF ViewSets for items (inventory listing), batches and suppliers.
The item list is the inventory view: filtered, sorted and annotated by
stock.repository.InventoryRepository rather than generic filter backends.

@file catalog/views.py
"""

from django.db.models import Count, Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from stock.repository import InventoryRepository
from stock.serializers import StockMovementReadSerializer
from users.permissions import CanManageCatalog

from .models import Batch, Item, Supplier
from .serializers import (
    BatchReadSerializer,
    BatchWriteSerializer,
    InventoryQuerySerializer,
    ItemReadSerializer,
    ItemWriteSerializer,
    SupplierReadSerializer,
    SupplierWriteSerializer,
)
from .services import CatalogService


class ItemViewSet(viewsets.ModelViewSet):
    """
    Inventory listing and item maintenance.

    GET /catalog/items/?search=&category=&sort=&direction=&page=&page_size=
    """

    permission_classes = [IsAuthenticated, CanManageCatalog]
    filter_backends = []

    def get_queryset(self):
        if self.action == 'list':
            params = InventoryQuerySerializer(data=self.request.query_params)
            params.is_valid(raise_exception=True)
            return InventoryRepository.list_inventory(**params.validated_data)
        return InventoryRepository.inventory_queryset()

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve', 'movements'):
            return ItemReadSerializer
        return ItemWriteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = CatalogService.create_item(actor=request.user, **serializer.validated_data)
        return Response(ItemReadSerializer(item).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        item = self.get_object()
        serializer = self.get_serializer(item, data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        item = CatalogService.update_item(item_id=item.pk, actor=request.user, **serializer.validated_data)
        return Response(ItemReadSerializer(item).data)

    def perform_destroy(self, instance):
        instance.soft_delete(user=self.request.user)

    @action(detail=True, methods=['get'], url_path='movements')
    def movements(self, request, pk=None):
        item = self.get_object()
        qs = (
            item.movements.select_related('batch', 'created_by', 'related_order')
            .order_by('-sequence')
        )
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(StockMovementReadSerializer(page, many=True).data)
        return Response(StockMovementReadSerializer(qs, many=True).data)


class BatchViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Lots per item. Quantities come from the ledger; a new lot starts empty."""

    permission_classes = [IsAuthenticated, CanManageCatalog]
    filterset_fields = ['item', 'item__category']
    search_fields = ['lot_number', 'item__name', 'item__code']
    ordering_fields = ['expiry_date', 'created_at', 'quantity_on_hand']
    ordering = ['expiry_date']

    def get_queryset(self):
        return Batch.objects.filter(is_deleted=False).select_related('item')

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return BatchReadSerializer
        return BatchWriteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        batch = CatalogService.get_or_create_batch(actor=request.user, **serializer.validated_data)
        return Response(BatchReadSerializer(batch).data, status=status.HTTP_201_CREATED)


class SupplierViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, CanManageCatalog]
    filterset_fields = ['is_active']
    search_fields = ['name', 'contact_name', 'email', 'phone']
    ordering_fields = ['name', 'average_lead_time_days', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return Supplier.objects.filter(is_deleted=False).annotate(
            order_count=Count('purchase_orders', filter=Q(purchase_orders__is_deleted=False)),
        )

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return SupplierReadSerializer
        return SupplierWriteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        supplier = CatalogService.create_supplier(actor=request.user, **serializer.validated_data)
        return Response(SupplierReadSerializer(supplier).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        supplier = self.get_object()
        serializer = self.get_serializer(supplier, data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        supplier = CatalogService.update_supplier(
            supplier_id=supplier.pk, actor=request.user, **serializer.validated_data,
        )
        return Response(SupplierReadSerializer(supplier).data)

    def perform_destroy(self, instance):
        instance.soft_delete(user=self.request.user)
