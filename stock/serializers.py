"""
Stock — Serializers

Ledger entries are read-only. Write serializers validate the input of the
adjust, dispense, return and count-session endpoints before it reaches the
service layer.

@file stock/serializers.py
"""

from rest_framework import serializers

from .models import InventorySession, StockMovement


class StockMovementReadSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    lot_number = serializers.CharField(source='batch.lot_number', read_only=True, default=None)
    order_number = serializers.CharField(source='related_order.order_number', read_only=True, default=None)
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    actor_name = serializers.SerializerMethodField()

    class Meta:
        model = StockMovement
        fields = [
            'id', 'item', 'item_name', 'batch', 'lot_number', 'sequence',
            'movement_type', 'movement_type_display', 'quantity_delta', 'balance_after',
            'unit_cost', 'reason_code', 'note',
            'related_order', 'order_number', 'inventory_session',
            'created_by', 'actor_name', 'created_at', 'entry_hash',
        ]
        read_only_fields = fields

    def get_actor_name(self, obj):
        return obj.created_by.get_full_name() if obj.created_by_id else None


class AdjustStockSerializer(serializers.Serializer):
    """A physical count: the quantity actually on the shelf."""

    item_id = serializers.UUIDField()
    real_quantity = serializers.IntegerField(min_value=0)
    reason_code = serializers.ChoiceField(
        choices=StockMovement.ReasonCode.choices, required=False, allow_blank=True,
    )
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    session_id = serializers.UUIDField(required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')


class DispenseSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')


class ReturnSerializer(DispenseSerializer):
    pass


class InventorySessionReadSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    responsible_name = serializers.SerializerMethodField()
    adjustment_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = InventorySession
        fields = [
            'id', 'title', 'status', 'status_display', 'responsible', 'responsible_name',
            'opened_at', 'closed_at', 'notes', 'adjustment_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_responsible_name(self, obj):
        return obj.responsible.get_full_name() if obj.responsible_id else None


class InventorySessionWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AlertSerializer(serializers.Serializer):
    kind = serializers.CharField()
    priority = serializers.CharField()
    action = serializers.CharField()
    message = serializers.CharField()
    item_id = serializers.CharField()
    item_name = serializers.CharField()
    current_stock = serializers.IntegerField()
    minimum_threshold = serializers.IntegerField()
    batch_id = serializers.CharField(allow_null=True)
    lot_number = serializers.CharField(allow_null=True)
    expiry_date = serializers.CharField(allow_null=True)
    days_remaining = serializers.IntegerField(allow_null=True)
