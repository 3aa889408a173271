"""
Procurement — Serializers

Read and write serializers for PurchaseOrder and its lines, plus the
receipt payload. Explicit field lists; no __all__.

@file procurement/serializers.py
"""

from rest_framework import serializers

from .models import PurchaseOrder, PurchaseOrderLine


class PurchaseOrderLineReadSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    item_code = serializers.CharField(source='item.code', read_only=True)
    remaining_quantity = serializers.IntegerField(read_only=True)
    line_total = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseOrderLine
        fields = [
            'id', 'item', 'item_name', 'item_code',
            'ordered_quantity', 'received_quantity', 'remaining_quantity',
            'unit_price', 'line_total',
        ]
        read_only_fields = fields


class PurchaseOrderReadSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    lines = PurchaseOrderLineReadSerializer(many=True, read_only=True)
    computed_total = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'order_number', 'supplier', 'supplier_name',
            'status', 'status_display', 'ordered_at', 'expected_delivery_date',
            'received_at', 'cancelled_at', 'total_amount', 'computed_total',
            'notes', 'lines', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PurchaseOrderLineWriteSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


class PurchaseOrderWriteSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    lines = PurchaseOrderLineWriteSerializer(many=True)
    as_draft = serializers.BooleanField(default=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError('At least one line is required.')
        return value


class ReceiptSerializer(serializers.Serializer):
    line_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    lot_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    expiry_date = serializers.DateField(required=False, allow_null=True)


class ReceiveOrderSerializer(serializers.Serializer):
    receipts = ReceiptSerializer(many=True, allow_empty=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
