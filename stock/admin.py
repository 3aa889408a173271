"""
Stock — Django Admin Configuration

Read-only ledger. No edit, no delete (insert-only).
INSERT ONLY — model save() blocks updates; delete() raises.

@file stock/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import InventorySession, StockMovement


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        'item', 'sequence', 'movement_type', 'quantity_delta', 'balance_after',
        'batch', 'reason_code', 'related_order', 'created_by', 'created_at',
    )
    list_filter = ('movement_type', 'reason_code', 'created_at')
    search_fields = ('item__name', 'item__code', 'note', 'entry_hash')
    readonly_fields = (
        'id', 'item', 'batch', 'sequence', 'movement_type', 'quantity_delta',
        'unit_cost', 'reason_code', 'note', 'related_order', 'inventory_session',
        'balance_after', 'previous_hash', 'entry_hash', 'created_by', 'created_at',
    )
    list_select_related = ('item', 'batch', 'related_order', 'created_by')
    show_full_result_count = False
    list_per_page = 50
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)

    fieldsets = (
        (_('Movement'), {
            'fields': ('id', 'item', 'batch', 'sequence', 'movement_type', 'quantity_delta', 'balance_after'),
        }),
        (_('Context'), {
            'fields': ('unit_cost', 'reason_code', 'note', 'related_order', 'inventory_session'),
        }),
        (_('Integrity'), {
            'fields': ('previous_hash', 'entry_hash'),
            'classes': ('collapse',),
        }),
        (_('Audit'), {
            'fields': ('created_by', 'created_at'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False  # INSERT ONLY: no updates

    def has_delete_permission(self, request, obj=None):
        return False  # INSERT ONLY: no deletes


@admin.register(InventorySession)
class InventorySessionAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'responsible', 'opened_at', 'closed_at')
    list_filter = ('status',)
    search_fields = ('title', 'notes')
    readonly_fields = ('id', 'status', 'opened_at', 'closed_at', 'created_at', 'updated_at')
    raw_id_fields = ('responsible',)
    ordering = ('-opened_at',)
