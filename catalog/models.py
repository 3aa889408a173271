"""
Catalog — Models

Items stocked by the pharmacy, their expiry-tracked batches, and the
suppliers they are ordered from.

Item.current_stock, Item.stock_version and Batch.quantity_on_hand are a
cache of the stock ledger: only stock.services.StockLedger writes them.

@file catalog/models.py
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import RegulatedModel


class Supplier(RegulatedModel):
    """A wholesaler the pharmacy places purchase orders with."""

    name = models.CharField(_('name'), max_length=255)
    contact_name = models.CharField(_('contact name'), max_length=255, blank=True)
    email = models.EmailField(_('email'), blank=True)
    phone = models.CharField(_('phone'), max_length=30, blank=True)
    address = models.TextField(_('address'), blank=True)
    average_lead_time_days = models.PositiveIntegerField(
        _('average lead time (days)'), default=2,
        help_text=_('Typical delay between order and delivery, used for safety stock'),
    )
    is_active = models.BooleanField(_('active'), default=True, db_index=True)

    class Meta:
        verbose_name = _('supplier')
        verbose_name_plural = _('suppliers')
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active', 'is_deleted']),
        ]

    def __str__(self):
        return self.name


class Item(RegulatedModel):
    """
    A stocked product. The category doubles as the dosage form and is the
    grouping key for category-level forecasts and consumption distribution.
    """

    class CategoryChoices(models.TextChoices):
        TABLET = 'TABLET', _('Tablet')
        CAPSULE = 'CAPSULE', _('Capsule')
        SYRUP = 'SYRUP', _('Syrup')
        INJECTION = 'INJECTION', _('Injectable')
        CREAM = 'CREAM', _('Cream / Ointment')
        DROPS = 'DROPS', _('Drops')
        INHALER = 'INHALER', _('Inhaler')
        SUPPOSITORY = 'SUPPOSITORY', _('Suppository')
        POWDER = 'POWDER', _('Powder')
        SOLUTION = 'SOLUTION', _('Solution')
        CONSUMABLE = 'CONSUMABLE', _('Medical consumable')
        OTHER = 'OTHER', _('Other')

    class UnitChoices(models.TextChoices):
        UNIT = 'UNIT', _('Unit')
        BOX = 'BOX', _('Box')
        BOTTLE = 'BOTTLE', _('Bottle')
        VIAL = 'VIAL', _('Vial')
        TUBE = 'TUBE', _('Tube')
        SACHET = 'SACHET', _('Sachet')

    code = models.CharField(
        _('code'), max_length=64, unique=True,
        help_text=_('Internal reference or barcode'),
    )
    name = models.CharField(_('name'), max_length=255, db_index=True)
    active_ingredient = models.CharField(_('active ingredient'), max_length=255, blank=True)
    strength = models.CharField(_('strength'), max_length=100, blank=True)
    manufacturer = models.CharField(_('manufacturer'), max_length=255, blank=True)
    category = models.CharField(
        _('category'), max_length=20,
        choices=CategoryChoices.choices,
        default=CategoryChoices.OTHER,
        db_index=True,
    )
    unit_of_measure = models.CharField(
        _('unit of measure'), max_length=10,
        choices=UnitChoices.choices,
        default=UnitChoices.UNIT,
    )
    unit_cost = models.DecimalField(
        _('unit cost'), max_digits=12, decimal_places=2, default=0,
    )
    minimum_threshold = models.PositiveIntegerField(
        _('minimum threshold'), default=10,
        help_text=_('Reorder point: at or below this quantity the item is flagged low'),
    )
    requires_prescription = models.BooleanField(_('prescription required'), default=False)
    preferred_supplier = models.ForeignKey(
        Supplier,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='preferred_items',
        verbose_name=_('preferred supplier'),
    )
    current_stock = models.IntegerField(
        _('current stock'), default=0, editable=False,
    )
    stock_version = models.PositiveBigIntegerField(
        _('stock version'), default=0, editable=False,
        help_text=_('Incremented on every ledger append; equals the last movement sequence'),
    )

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'is_deleted']),
            models.Index(fields=['current_stock']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_stock__gte=0),
                name='item_stock_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=0),
                name='item_unit_cost_non_negative',
            ),
        ]

    def __str__(self):
        label = f'{self.name} {self.strength}'.strip()
        return f'{label} ({self.code})'

    @property
    def stock_status(self) -> str:
        from stock.repository import stock_status
        return stock_status(self.current_stock, self.minimum_threshold)

    @property
    def total_value(self):
        return self.current_stock * self.unit_cost


class Batch(RegulatedModel):
    """A lot of one item sharing a single expiry date."""

    item = models.ForeignKey(
        Item,
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('item'),
    )
    lot_number = models.CharField(_('lot number'), max_length=100)
    expiry_date = models.DateField(_('expiry date'), db_index=True)
    quantity_on_hand = models.IntegerField(
        _('quantity on hand'), default=0, editable=False,
    )

    class Meta:
        verbose_name = _('batch')
        verbose_name_plural = _('batches')
        ordering = ['expiry_date']
        indexes = [
            models.Index(fields=['item', 'expiry_date']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['item', 'lot_number'],
                name='unique_item_lot_number',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_on_hand__gte=0),
                name='batch_quantity_non_negative',
            ),
        ]

    def __str__(self):
        return f'Lot {self.lot_number} ({self.item.name}, exp. {self.expiry_date})'

    @property
    def days_to_expiry(self) -> int:
        return (self.expiry_date - timezone.localdate()).days

    @property
    def is_expired(self) -> bool:
        return self.days_to_expiry < 0
