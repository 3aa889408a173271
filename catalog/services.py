"""
Catalog — Service Layer

Item, batch and supplier maintenance. Balances are never set here: a new
item starts at zero and is stocked through a receipt or an adjustment.

@file catalog/services.py
"""

import logging

from django.db import transaction

from core.exceptions import BusinessRuleViolation, ResourceNotFoundError

from .models import Batch, Item, Supplier

logger = logging.getLogger('pharmastock')

_PROTECTED_FIELDS = {'id', 'pk', 'current_stock', 'stock_version', 'quantity_on_hand'}


class CatalogService:
    """Catalog writes with model validation and actor tracking."""

    @staticmethod
    @transaction.atomic
    def create_item(*, actor=None, **fields) -> Item:
        item = Item(**fields)
        item.full_clean()
        item.created_by = actor
        item._current_user = actor
        item.save()
        logger.info('Item %s (%s) created by %s', item.pk, item.code, actor)
        return item

    @staticmethod
    @transaction.atomic
    def update_item(*, item_id, actor=None, **fields) -> Item:
        try:
            item = Item.objects.select_for_update().get(pk=item_id, is_deleted=False)
        except Item.DoesNotExist:
            raise ResourceNotFoundError(detail='Item not found.', resource_id=item_id)

        for field, value in fields.items():
            if field in _PROTECTED_FIELDS:
                raise BusinessRuleViolation(
                    detail=f'{field} is maintained by the stock ledger and cannot be edited.',
                )
            setattr(item, field, value)

        item.updated_by = actor
        item._current_user = actor
        item.full_clean()
        item.save()
        return item

    @staticmethod
    @transaction.atomic
    def create_supplier(*, actor=None, **fields) -> Supplier:
        supplier = Supplier(**fields)
        supplier.full_clean()
        supplier.created_by = actor
        supplier._current_user = actor
        supplier.save()
        return supplier

    @staticmethod
    @transaction.atomic
    def update_supplier(*, supplier_id, actor=None, **fields) -> Supplier:
        try:
            supplier = Supplier.objects.select_for_update().get(pk=supplier_id, is_deleted=False)
        except Supplier.DoesNotExist:
            raise ResourceNotFoundError(detail='Supplier not found.', resource_id=supplier_id)
        for field, value in fields.items():
            setattr(supplier, field, value)
        supplier.updated_by = actor
        supplier._current_user = actor
        supplier.full_clean()
        supplier.save()
        return supplier

    @staticmethod
    def get_or_create_batch(*, item: Item, lot_number: str, expiry_date, actor=None) -> Batch:
        """
        Reuse the item's batch with this lot number or create it. An existing
        lot must carry the same expiry date.
        """
        batch = Batch.objects.filter(item=item, lot_number=lot_number).first()
        if batch is None:
            batch = Batch(item=item, lot_number=lot_number, expiry_date=expiry_date, created_by=actor)
            batch.full_clean()
            batch.save()
            logger.info('Batch %s created for item %s (exp. %s)', lot_number, item.pk, expiry_date)
            return batch
        if batch.is_deleted:
            raise BusinessRuleViolation(detail=f'Lot {lot_number} has been retired.')
        if batch.expiry_date != expiry_date:
            raise BusinessRuleViolation(
                detail=f'Lot {lot_number} already exists with expiry date {batch.expiry_date}.',
            )
        return batch
