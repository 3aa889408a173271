"""
Procurement — Models

Purchase orders placed with suppliers and their lines. Order status is
moved only by procurement.services._transition; receiving derives it from
line state.

@file procurement/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, RegulatedModel


class PurchaseOrder(RegulatedModel):
    """
    An order to one supplier.

    State machine: DRAFT → ORDERED → PARTIALLY_RECEIVED → RECEIVED,
    ORDERED → RECEIVED, or DRAFT/ORDERED/PARTIALLY_RECEIVED → CANCELLED.
    """

    class StatusChoices(models.TextChoices):
        DRAFT = 'DRAFT', _('Draft')
        ORDERED = 'ORDERED', _('Ordered')
        PARTIALLY_RECEIVED = 'PARTIALLY_RECEIVED', _('Partially received')
        RECEIVED = 'RECEIVED', _('Received')
        CANCELLED = 'CANCELLED', _('Cancelled')

    order_number = models.CharField(
        _('order number'), max_length=20, unique=True,
        help_text=_('CMD-yymjXXX'),
    )
    supplier = models.ForeignKey(
        'catalog.Supplier',
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        verbose_name=_('supplier'),
    )
    status = models.CharField(
        _('status'), max_length=20,
        choices=StatusChoices.choices,
        default=StatusChoices.DRAFT,
        db_index=True,
    )
    ordered_at = models.DateTimeField(_('ordered at'), null=True, blank=True)
    expected_delivery_date = models.DateField(_('expected delivery date'), null=True, blank=True)
    received_at = models.DateTimeField(_('received at'), null=True, blank=True)
    cancelled_at = models.DateTimeField(_('cancelled at'), null=True, blank=True)
    total_amount = models.DecimalField(
        _('total amount'), max_digits=15, decimal_places=2, default=0,
    )
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('purchase order')
        verbose_name_plural = _('purchase orders')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['supplier', 'status']),
            models.Index(fields=['status', 'is_deleted']),
        ]

    def __str__(self):
        return f'{self.order_number} — {self.supplier.name} ({self.status})'

    @property
    def computed_total(self):
        return sum((line.line_total for line in self.lines.all()), 0)

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.StatusChoices.RECEIVED, self.StatusChoices.CANCELLED)


class PurchaseOrderLine(BaseModel):
    """One item on a purchase order. 0 ≤ received_quantity ≤ ordered_quantity."""

    order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('order'),
    )
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='order_lines',
        verbose_name=_('item'),
    )
    ordered_quantity = models.PositiveIntegerField(_('ordered quantity'))
    received_quantity = models.PositiveIntegerField(_('received quantity'), default=0)
    unit_price = models.DecimalField(
        _('unit price'), max_digits=12, decimal_places=2,
    )

    class Meta:
        verbose_name = _('purchase order line')
        verbose_name_plural = _('purchase order lines')
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['order', 'item'], name='unique_order_item'),
            models.CheckConstraint(
                condition=models.Q(ordered_quantity__gt=0),
                name='po_line_ordered_positive',
            ),
            models.CheckConstraint(
                condition=models.Q(received_quantity__lte=models.F('ordered_quantity')),
                name='po_line_received_lte_ordered',
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0),
                name='po_line_price_non_negative',
            ),
        ]

    def __str__(self):
        return f'{self.order_id} — {self.item} {self.received_quantity}/{self.ordered_quantity}'

    @property
    def remaining_quantity(self) -> int:
        return self.ordered_quantity - self.received_quantity

    @property
    def is_complete(self) -> bool:
        return self.received_quantity >= self.ordered_quantity

    @property
    def line_total(self):
        return self.unit_price * self.ordered_quantity
