"""
Stock — Models

The stock ledger: one immutable row per signed quantity change on an item
(and optionally one of its batches). Balances cached on Item and Batch are
the running sum of these rows. Records are INSERT ONLY — never update or
delete.

Each movement carries a per-item sequence and a SHA-256 hash chained to the
previous movement of the same item, so any edit made behind the ledger's
back is detectable by replay.

@file stock/models.py
"""

import hashlib
import uuid
from datetime import timezone as dt_timezone

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, SoftDeleteMixin

GENESIS_HASH = '0' * 64


class InventorySession(BaseModel, SoftDeleteMixin):
    """
    A physical count campaign. Adjustments recorded while the session is
    OPEN can be attributed to it; VALIDATED and CANCELLED are terminal.
    """

    class StatusChoices(models.TextChoices):
        OPEN = 'OPEN', _('Open')
        VALIDATED = 'VALIDATED', _('Validated')
        CANCELLED = 'CANCELLED', _('Cancelled')

    title = models.CharField(_('title'), max_length=255)
    status = models.CharField(
        _('status'), max_length=10,
        choices=StatusChoices.choices,
        default=StatusChoices.OPEN,
        db_index=True,
    )
    responsible = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='inventory_sessions',
        verbose_name=_('responsible'),
    )
    opened_at = models.DateTimeField(_('opened at'), default=timezone.now)
    closed_at = models.DateTimeField(_('closed at'), null=True, blank=True)
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('inventory session')
        verbose_name_plural = _('inventory sessions')
        ordering = ['-opened_at']

    def __str__(self):
        return f'{self.title} ({self.status})'

    @property
    def is_open(self) -> bool:
        return self.status == self.StatusChoices.OPEN


class StockMovement(models.Model):
    """
    A single immutable stock movement (insert only).

    quantity_delta is signed: RECEIPT and RETURN add stock, DISPENSE removes
    it, ADJUSTMENT goes either way and must carry a reason code.
    balance_after is the item balance once this movement is applied.
    """

    class MovementType(models.TextChoices):
        DISPENSE = 'DISPENSE', _('Dispense')
        RECEIPT = 'RECEIPT', _('Receipt')
        ADJUSTMENT = 'ADJUSTMENT', _('Adjustment')
        RETURN = 'RETURN', _('Return')

    class ReasonCode(models.TextChoices):
        LOSS = 'LOSS', _('Loss')
        DAMAGE = 'DAMAGE', _('Damage')
        EXPIRY_DESTRUCTION = 'EXPIRY_DESTRUCTION', _('Expiry destruction')
        MISCOUNT_CORRECTION = 'MISCOUNT_CORRECTION', _('Miscount correction')
        THEFT = 'THEFT', _('Theft')
        OTHER = 'OTHER', _('Other')

    id = models.UUIDField(
        primary_key=True, default=uuid.uuid4, editable=False,
    )
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('item'),
    )
    batch = models.ForeignKey(
        'catalog.Batch',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('batch'),
    )
    sequence = models.PositiveBigIntegerField(
        _('sequence'),
        help_text=_('Strictly increasing per item, starting at 1'),
    )
    movement_type = models.CharField(
        _('movement type'), max_length=12,
        choices=MovementType.choices, db_index=True,
    )
    quantity_delta = models.IntegerField(_('quantity delta'))
    unit_cost = models.DecimalField(
        _('unit cost'), max_digits=12, decimal_places=2,
        null=True, blank=True,
    )
    reason_code = models.CharField(
        _('reason code'), max_length=20,
        choices=ReasonCode.choices, blank=True,
    )
    note = models.CharField(_('note'), max_length=500, blank=True)
    related_order = models.ForeignKey(
        'procurement.PurchaseOrder',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('related order'),
    )
    inventory_session = models.ForeignKey(
        InventorySession,
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('inventory session'),
    )
    balance_after = models.IntegerField(_('balance after'))
    previous_hash = models.CharField(_('previous hash'), max_length=64)
    entry_hash = models.CharField(_('entry hash'), max_length=64, unique=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('created by'),
    )
    created_at = models.DateTimeField(
        _('created at'), default=timezone.now, db_index=True,
    )
    # No updated_at: immutable record.

    class Meta:
        verbose_name = _('stock movement')
        verbose_name_plural = _('stock movements')
        ordering = ['-created_at', '-sequence']
        indexes = [
            models.Index(fields=['item', 'created_at'], name='stock_item_created_idx'),
            models.Index(fields=['movement_type', 'created_at'], name='stock_type_created_idx'),
            models.Index(fields=['batch', 'sequence'], name='stock_batch_seq_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['item', 'sequence'],
                name='unique_item_movement_sequence',
            ),
            models.CheckConstraint(
                condition=~models.Q(quantity_delta=0),
                name='movement_non_zero_delta',
            ),
            models.CheckConstraint(
                condition=models.Q(balance_after__gte=0),
                name='movement_balance_non_negative',
            ),
        ]

    def __str__(self):
        return f'{self.movement_type} {self.quantity_delta:+d} item={self.item_id} #{self.sequence}'

    def canonical_payload(self) -> str:
        """Stable text form of every business field, used for hashing."""
        created = self.created_at.astimezone(dt_timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')
        unit_cost = '' if self.unit_cost is None else format(self.unit_cost, '.2f')
        parts = [
            str(self.item_id),
            str(self.batch_id or ''),
            str(self.sequence),
            self.movement_type,
            str(self.quantity_delta),
            unit_cost,
            self.reason_code or '',
            str(self.related_order_id or ''),
            str(self.inventory_session_id or ''),
            str(self.balance_after),
            str(self.created_by_id or ''),
            created,
            self.previous_hash,
        ]
        return '|'.join(parts)

    def compute_hash(self) -> str:
        return hashlib.sha256(self.canonical_payload().encode()).hexdigest()

    def save(self, *args, **kwargs):
        if not self._state.adding or StockMovement.objects.filter(pk=self.pk).exists():
            raise NotImplementedError('StockMovement is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('StockMovement records cannot be deleted.')
