"""
Catalog — Django Admin Configuration

Items with stock status badges and a batch inline, batches with expiry
colour coding, suppliers. Ledger-maintained balances are read-only.

@file catalog/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from stock.repository import STOCK_STATUS_CRITICAL, STOCK_STATUS_LOW

from .models import Batch, Item, Supplier

STATUS_COLORS = {
    STOCK_STATUS_CRITICAL: '#dc2626',
    STOCK_STATUS_LOW: '#f59e0b',
}


def _badge(color, label):
    return format_html(
        '<span style="background:{};color:#fff;padding:2px 8px;'
        'border-radius:4px;font-size:11px;font-weight:600;">{}</span>',
        color, label,
    )


class BatchInline(admin.TabularInline):
    model = Batch
    fk_name = 'item'
    extra = 0
    readonly_fields = ('quantity_on_hand', 'created_at')
    fields = ('lot_number', 'expiry_date', 'quantity_on_hand', 'created_at')
    show_change_link = True


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = (
        'name', 'code', 'category', 'current_stock', 'minimum_threshold',
        'unit_cost', 'stock_badge', 'preferred_supplier',
    )
    list_filter = ('category', 'requires_prescription', 'is_deleted')
    search_fields = ('name', 'code', 'active_ingredient')
    readonly_fields = (
        'id', 'current_stock', 'stock_version',
        'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    list_select_related = ('preferred_supplier',)
    raw_id_fields = ('preferred_supplier',)
    show_full_result_count = False
    list_per_page = 30
    ordering = ('name',)
    inlines = [BatchInline]

    fieldsets = (
        (_('Identification'), {'fields': ('id', 'code', 'name', 'active_ingredient', 'strength', 'manufacturer')}),
        (_('Classification'), {'fields': ('category', 'unit_of_measure', 'requires_prescription')}),
        (_('Procurement'), {'fields': ('unit_cost', 'minimum_threshold', 'preferred_supplier')}),
        (_('Stock (ledger)'), {'fields': ('current_stock', 'stock_version')}),
        (_('Audit'), {'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'), 'classes': ('collapse',)}),
    )

    @admin.display(description=_('Stock'))
    def stock_badge(self, obj):
        status = obj.stock_status
        return _badge(STATUS_COLORS.get(status, '#22c55e'), status)

    def save_model(self, request, obj, form, change):
        obj._current_user = request.user
        if not change:
            obj.created_by = request.user
        obj.updated_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    list_display = ('lot_number', 'item', 'expiry_date', 'expiry_badge', 'quantity_on_hand')
    list_filter = ('expiry_date', 'item__category')
    search_fields = ('lot_number', 'item__name', 'item__code')
    readonly_fields = ('id', 'quantity_on_hand', 'created_at', 'updated_at')
    list_select_related = ('item',)
    raw_id_fields = ('item',)
    date_hierarchy = 'expiry_date'
    ordering = ('expiry_date',)

    @admin.display(description=_('Expiry'))
    def expiry_badge(self, obj):
        days = obj.days_to_expiry
        if days < 0:
            return _badge('#dc2626', _('Expired'))
        if days <= 30:
            return _badge('#f97316', f'{days}d')
        if days <= 90:
            return _badge('#eab308', f'{days}d')
        return _badge('#22c55e', f'{days}d')


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ('name', 'contact_name', 'phone', 'email', 'average_lead_time_days', 'is_active')
    list_filter = ('is_active', 'is_deleted')
    search_fields = ('name', 'contact_name', 'email', 'phone')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    ordering = ('name',)

    def save_model(self, request, obj, form, change):
        obj._current_user = request.user
        super().save_model(request, obj, form, change)
