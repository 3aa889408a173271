"""
Catalog — Serializers

Read and write serializers for Item, Batch and Supplier.
Explicit field lists; ledger-maintained balances are read-only everywhere.

@file catalog/serializers.py
"""

from rest_framework import serializers

from stock.repository import stock_status

from .models import Batch, Item, Supplier


# ---------------------------------------------------------------------------
# Supplier
# ---------------------------------------------------------------------------

class SupplierReadSerializer(serializers.ModelSerializer):
    order_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'contact_name', 'email', 'phone', 'address',
            'average_lead_time_days', 'is_active', 'order_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SupplierWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            'name', 'contact_name', 'email', 'phone', 'address',
            'average_lead_time_days', 'is_active',
        ]


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------

class ItemReadSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    preferred_supplier_name = serializers.CharField(
        source='preferred_supplier.name', read_only=True, default=None,
    )
    stock_status = serializers.SerializerMethodField()
    total_value = serializers.SerializerMethodField()

    class Meta:
        model = Item
        fields = [
            'id', 'code', 'name', 'active_ingredient', 'strength', 'manufacturer',
            'category', 'category_display', 'unit_of_measure',
            'unit_cost', 'minimum_threshold', 'requires_prescription',
            'preferred_supplier', 'preferred_supplier_name',
            'current_stock', 'stock_version', 'stock_status', 'total_value',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_stock_status(self, obj):
        label = getattr(obj, 'stock_status_label', None)
        return label or stock_status(obj.current_stock, obj.minimum_threshold)

    def get_total_value(self, obj):
        value = getattr(obj, 'total_value_amount', None)
        if value is None:
            value = obj.total_value
        return value


class ItemWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = [
            'code', 'name', 'active_ingredient', 'strength', 'manufacturer',
            'category', 'unit_of_measure', 'unit_cost', 'minimum_threshold',
            'requires_prescription', 'preferred_supplier',
        ]

    def validate_unit_cost(self, value):
        if value < 0:
            raise serializers.ValidationError('Unit cost cannot be negative.')
        return value

    def validate_preferred_supplier(self, value):
        if value is not None and (value.is_deleted or not value.is_active):
            raise serializers.ValidationError('Supplier is inactive.')
        return value


class InventoryQuerySerializer(serializers.Serializer):
    """Query parameters of the inventory listing."""

    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    category = serializers.CharField(required=False, allow_blank=True)
    sort = serializers.ChoiceField(
        choices=['name', 'current_stock', 'unit_cost', 'created_at'], required=False, default='name',
    )
    direction = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='asc')

    def validate_search(self, value):
        value = value.strip()
        if value and len(value) < 2:
            raise serializers.ValidationError('Search needs at least 2 characters.')
        return value


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

class BatchReadSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    days_to_expiry = serializers.IntegerField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Batch
        fields = [
            'id', 'item', 'item_name', 'lot_number', 'expiry_date',
            'quantity_on_hand', 'days_to_expiry', 'is_expired',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BatchWriteSerializer(serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.filter(is_deleted=False))
    lot_number = serializers.CharField(max_length=100)
    expiry_date = serializers.DateField()
