"""
Procurement — Django Admin Configuration

Purchase orders with status badges and a read-only line inline. Statuses
are changed through the API workflow, never edited here.

@file procurement/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import PurchaseOrder, PurchaseOrderLine

STATUS_COLORS = {
    'DRAFT': '#6b7280',
    'ORDERED': '#3b82f6',
    'PARTIALLY_RECEIVED': '#f59e0b',
    'RECEIVED': '#22c55e',
    'CANCELLED': '#dc2626',
}


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    can_delete = False
    readonly_fields = ('item', 'ordered_quantity', 'received_quantity', 'unit_price', 'line_total_display')
    fields = ('item', 'ordered_quantity', 'received_quantity', 'unit_price', 'line_total_display')

    @admin.display(description=_('Line total'))
    def line_total_display(self, obj):
        return obj.line_total if obj.pk else '—'

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = (
        'order_number', 'supplier', 'status_badge', 'total_amount',
        'ordered_at', 'expected_delivery_date', 'created_at',
    )
    list_filter = ('status', 'is_deleted')
    search_fields = ('order_number', 'supplier__name')
    readonly_fields = (
        'id', 'order_number', 'status', 'total_amount', 'ordered_at', 'expected_delivery_date',
        'received_at', 'cancelled_at', 'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    list_select_related = ('supplier',)
    raw_id_fields = ('supplier',)
    show_full_result_count = False
    list_per_page = 30
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)
    inlines = [PurchaseOrderLineInline]

    fieldsets = (
        (_('Order'), {'fields': ('id', 'order_number', 'supplier', 'notes')}),
        (_('Status'), {'fields': ('status', 'ordered_at', 'expected_delivery_date', 'received_at', 'cancelled_at')}),
        (_('Amounts'), {'fields': ('total_amount',)}),
        (_('Audit'), {'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'), 'classes': ('collapse',)}),
    )

    def has_add_permission(self, request):
        return False

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        color = STATUS_COLORS.get(obj.status, '#6b7280')
        return format_html(
            '<span style="background:{};color:#fff;padding:2px 8px;'
            'border-radius:4px;font-size:11px;font-weight:600;">{}</span>',
            color, obj.get_status_display(),
        )
