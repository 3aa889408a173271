"""
Stock — Service Layer

StockLedger is the only writer of balances: every dispense, receipt,
adjustment and return is one append. PhysicalInventoryService turns a
counted quantity into a single corrective adjustment. DispenseService
draws stock first-expiry-first-out across batches.

INSERT ONLY — never update or delete StockMovement.

@file stock/services.py
"""

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from catalog.models import Batch, Item
from core.concurrency import retry_on_conflict
from core.constants import (
    AUDIT_ACTION_RECONCILIATION,
    AUDIT_ACTION_STATUS_CHANGE,
    AUDIT_ACTION_STOCK_MOVEMENT,
)
from core.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    InsufficientStockError,
    InvalidStateTransition,
    ResourceNotFoundError,
)
from core.services import AuditService

from .models import GENESIS_HASH, InventorySession, StockMovement
from .repository import InventoryRepository

logger = logging.getLogger('pharmastock')

MovementType = StockMovement.MovementType
ReasonCode = StockMovement.ReasonCode

POSITIVE_TYPES = {MovementType.RECEIPT, MovementType.RETURN}
NEGATIVE_TYPES = {MovementType.DISPENSE}


def _validate_quantity(value, name='quantity') -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise BusinessRuleViolation(detail=f'{name} must be an integer.')
    return value


def _validate_movement(movement_type: str, quantity_delta: int, reason_code: str) -> None:
    if movement_type not in MovementType.values:
        raise BusinessRuleViolation(detail=f'Invalid movement_type: {movement_type}')
    _validate_quantity(quantity_delta, 'quantity_delta')
    if quantity_delta == 0:
        raise BusinessRuleViolation(detail='A zero-quantity movement is not recorded.')
    if movement_type in POSITIVE_TYPES and quantity_delta < 0:
        raise BusinessRuleViolation(detail=f'{movement_type} movements must increase stock.')
    if movement_type in NEGATIVE_TYPES and quantity_delta > 0:
        raise BusinessRuleViolation(detail=f'{movement_type} movements must decrease stock.')
    if movement_type == MovementType.ADJUSTMENT:
        if not reason_code:
            raise BusinessRuleViolation(detail='An adjustment requires a reason code.')
        if reason_code not in ReasonCode.values:
            raise BusinessRuleViolation(detail=f'Invalid reason_code: {reason_code}')
    elif reason_code:
        raise BusinessRuleViolation(detail='A reason code is only accepted on adjustments.')


def _load_item(item_id) -> Item:
    try:
        item = Item.objects.filter(pk=item_id, is_deleted=False).first()
    except (ValueError, DjangoValidationError):
        item = None
    if item is None:
        raise BusinessRuleViolation(detail=f'Unknown item: {item_id}')
    return item


class StockLedger:
    """Append-only ledger with per-item optimistic concurrency."""

    @staticmethod
    def append(
        *,
        item_id,
        movement_type: str,
        quantity_delta: int,
        batch_id=None,
        unit_cost=None,
        actor=None,
        reason_code: str = '',
        note: str = '',
        related_order_id=None,
        inventory_session_id=None,
        expected_version: int | None = None,
        occurred_at=None,
    ) -> StockMovement:
        """
        Record one movement and move the cached balances with it.

        With expected_version the caller asserts the item has not moved since
        it read it, and a mismatch raises ConflictError straight away.
        Without it, a lost compare-and-swap is retried once with fresh state.
        """
        kwargs = dict(
            item_id=item_id,
            movement_type=movement_type,
            quantity_delta=quantity_delta,
            batch_id=batch_id,
            unit_cost=unit_cost,
            actor=actor,
            reason_code=reason_code or '',
            note=note or '',
            related_order_id=related_order_id,
            inventory_session_id=inventory_session_id,
            expected_version=expected_version,
            occurred_at=occurred_at,
        )
        if expected_version is not None:
            return StockLedger._append(**kwargs)
        return retry_on_conflict(StockLedger._append)(**kwargs)

    @staticmethod
    @transaction.atomic
    def _append(
        *,
        item_id,
        movement_type,
        quantity_delta,
        batch_id,
        unit_cost,
        actor,
        reason_code,
        note,
        related_order_id,
        inventory_session_id,
        expected_version,
        occurred_at,
    ) -> StockMovement:
        _validate_movement(movement_type, quantity_delta, reason_code)
        item = _load_item(item_id)

        if expected_version is not None and item.stock_version != expected_version:
            raise ConflictError(
                detail=(
                    f'Item {item.pk} moved since it was read '
                    f'(expected version {expected_version}, found {item.stock_version}).'
                ),
            )

        batch = None
        if batch_id is not None:
            batch = InventoryRepository.get_batch(batch_id)
            if batch.item_id != item.pk:
                raise BusinessRuleViolation(detail='Batch does not belong to this item.')

        new_balance = item.current_stock + quantity_delta
        if new_balance < 0:
            raise InsufficientStockError(
                detail=f'Insufficient stock: balance={item.current_stock}, requested={-quantity_delta}.',
            )

        if not InventoryRepository._compare_and_swap(item.pk, item.stock_version, new_balance):
            raise ConflictError(detail=f'Concurrent movement on item {item.pk}.')
        sequence = item.stock_version + 1

        # The item row is now locked by this transaction until commit.
        if batch is not None:
            batch = Batch.objects.select_for_update().get(pk=batch.pk)
            new_batch_qty = batch.quantity_on_hand + quantity_delta
            if new_batch_qty < 0:
                raise InsufficientStockError(
                    detail=(
                        f'Insufficient stock in lot {batch.lot_number}: '
                        f'balance={batch.quantity_on_hand}, requested={-quantity_delta}.'
                    ),
                )
            Batch.objects.filter(pk=batch.pk).update(quantity_on_hand=new_batch_qty)

        last = InventoryRepository.last_movement(item.pk)
        if unit_cost is not None:
            unit_cost = Decimal(str(unit_cost)).quantize(Decimal('0.01'))
        movement = StockMovement(
            item=item,
            batch=batch,
            sequence=sequence,
            movement_type=movement_type,
            quantity_delta=quantity_delta,
            unit_cost=unit_cost,
            reason_code=reason_code,
            note=note[:500],
            related_order_id=related_order_id,
            inventory_session_id=inventory_session_id,
            balance_after=new_balance,
            previous_hash=last.entry_hash if last else GENESIS_HASH,
            created_by=actor if getattr(actor, 'is_authenticated', False) else None,
            created_at=occurred_at or timezone.now(),
        )
        movement.entry_hash = movement.compute_hash()
        movement.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STOCK_MOVEMENT,
            model_name='StockMovement',
            object_id=str(movement.pk),
            old_values={'current_stock': item.current_stock, 'stock_version': item.stock_version},
            new_values={
                'item_id': str(item.pk),
                'batch_id': str(batch.pk) if batch else None,
                'movement_type': movement_type,
                'quantity_delta': quantity_delta,
                'reason_code': reason_code or None,
                'current_stock': new_balance,
                'stock_version': sequence,
            },
        )
        logger.info(
            'StockMovement %s %s delta=%+d item=%s seq=%s balance=%s',
            movement.pk, movement_type, quantity_delta, item.pk, sequence, new_balance,
        )
        return movement


class PhysicalInventoryService:
    """Counted-versus-recorded reconciliation and count sessions."""

    SESSION_TRANSITIONS = {
        InventorySession.StatusChoices.OPEN: {
            InventorySession.StatusChoices.VALIDATED,
            InventorySession.StatusChoices.CANCELLED,
        },
        InventorySession.StatusChoices.VALIDATED: set(),
        InventorySession.StatusChoices.CANCELLED: set(),
    }

    @staticmethod
    @retry_on_conflict
    @transaction.atomic
    def reconcile(
        *,
        item_id,
        counted_quantity: int,
        reason_code: str | None = None,
        actor=None,
        session_id=None,
        batch_id=None,
        note: str = '',
    ) -> StockMovement | None:
        """
        Align the recorded balance with a physical count.

        Returns the ADJUSTMENT movement, or None when the count already
        matches (no history is written). With batch_id the count applies to
        that lot only; without it, a loss may only come out of stock held
        outside lots.
        """
        _validate_quantity(counted_quantity, 'counted_quantity')
        if counted_quantity < 0:
            raise BusinessRuleViolation(detail='Counted quantity cannot be negative.')

        item = InventoryRepository.get_item(item_id)
        session = None
        if session_id is not None:
            session = PhysicalInventoryService._get_session(session_id)
            if not session.is_open:
                raise InvalidStateTransition(
                    detail=f'Inventory session is {session.status}; counts need an OPEN session.',
                )

        if batch_id is not None:
            batch = InventoryRepository.get_batch(batch_id)
            if batch.item_id != item.pk:
                raise BusinessRuleViolation(detail='Batch does not belong to this item.')
            recorded = batch.quantity_on_hand
        else:
            recorded = item.current_stock

        delta = counted_quantity - recorded
        if delta == 0:
            logger.info('Count for item %s matches recorded %s; nothing to adjust.', item.pk, recorded)
            return None
        if not reason_code:
            raise BusinessRuleViolation(
                detail=f'Counted {counted_quantity} differs from recorded {recorded}; a reason code is required.',
            )
        if batch_id is None and delta < 0:
            in_batches = Batch.objects.filter(item=item, is_deleted=False).aggregate(
                total=Sum('quantity_on_hand'),
            )['total'] or 0
            unbatched = item.current_stock - in_batches
            if -delta > unbatched:
                # Lot balances never exceed the item balance.
                raise BusinessRuleViolation(
                    detail=(
                        f'Loss of {-delta} exceeds the {unbatched} unit(s) held outside lots; '
                        'count each lot of this item separately.'
                    ),
                )

        movement = StockLedger.append(
            item_id=item.pk,
            movement_type=MovementType.ADJUSTMENT,
            quantity_delta=delta,
            batch_id=batch_id,
            unit_cost=item.unit_cost,
            actor=actor,
            reason_code=reason_code,
            note=note,
            inventory_session_id=session.pk if session else None,
            expected_version=item.stock_version,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_RECONCILIATION,
            model_name='Item',
            object_id=str(item.pk),
            old_values={'recorded_quantity': recorded},
            new_values={
                'counted_quantity': counted_quantity,
                'delta': delta,
                'reason_code': reason_code,
                'movement_id': str(movement.pk),
                'session_id': str(session.pk) if session else None,
            },
        )
        logger.info(
            'Reconciled item %s: recorded=%s counted=%s delta=%+d reason=%s',
            item.pk, recorded, counted_quantity, delta, reason_code,
        )
        return movement

    @staticmethod
    def _get_session(session_id, lock: bool = False) -> InventorySession:
        qs = InventorySession.objects.filter(is_deleted=False)
        if lock:
            qs = qs.select_for_update()
        try:
            return qs.get(pk=session_id)
        except (InventorySession.DoesNotExist, ValueError, DjangoValidationError):
            raise ResourceNotFoundError(detail='Inventory session not found.', resource_id=session_id)

    @staticmethod
    @transaction.atomic
    def open_session(*, title: str, actor=None, notes: str = '') -> InventorySession:
        if not title or not title.strip():
            raise BusinessRuleViolation(detail='A session title is required.')
        session = InventorySession.objects.create(
            title=title.strip(),
            notes=notes,
            responsible=actor if getattr(actor, 'is_authenticated', False) else None,
            created_by=actor if getattr(actor, 'is_authenticated', False) else None,
        )
        logger.info('Inventory session %s opened by %s', session.pk, actor)
        return session

    @staticmethod
    def _close_session(session_id, new_status: str, actor=None) -> InventorySession:
        session = PhysicalInventoryService._get_session(session_id, lock=True)
        allowed = PhysicalInventoryService.SESSION_TRANSITIONS.get(session.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                detail=f'Cannot transition inventory session from {session.status} to {new_status}.',
            )
        old_status = session.status
        session.status = new_status
        session.closed_at = timezone.now()
        session.updated_by = actor if getattr(actor, 'is_authenticated', False) else None
        session.save(update_fields=['status', 'closed_at', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='InventorySession',
            object_id=str(session.pk),
            old_values={'status': old_status},
            new_values={'status': new_status, 'adjustments': session.movements.count()},
        )
        return session

    @staticmethod
    @transaction.atomic
    def validate_session(*, session_id, actor=None) -> InventorySession:
        return PhysicalInventoryService._close_session(
            session_id, InventorySession.StatusChoices.VALIDATED, actor,
        )

    @staticmethod
    @transaction.atomic
    def cancel_session(*, session_id, actor=None) -> InventorySession:
        """Close the session; adjustments already recorded stay in the ledger."""
        return PhysicalInventoryService._close_session(
            session_id, InventorySession.StatusChoices.CANCELLED, actor,
        )


class DispenseService:
    """Outbound and returned stock."""

    @staticmethod
    def fefo_plan(item: Item, quantity: int, today=None) -> list[tuple[Batch | None, int]]:
        """
        Split a dispense across unexpired batches, earliest expiry first, then
        unbatched stock. Raises InsufficientStockError when short.
        """
        today = today or timezone.localdate()
        batches = list(
            Batch.objects.filter(item=item, is_deleted=False, quantity_on_hand__gt=0)
            .order_by('expiry_date', 'created_at')
        )
        in_batches = sum(b.quantity_on_hand for b in batches)
        unbatched = max(0, item.current_stock - in_batches)

        plan: list[tuple[Batch | None, int]] = []
        remaining = quantity
        for batch in batches:
            if remaining == 0:
                break
            if batch.expiry_date < today:
                continue
            take = min(remaining, batch.quantity_on_hand)
            plan.append((batch, take))
            remaining -= take
        if remaining and unbatched:
            take = min(remaining, unbatched)
            plan.append((None, take))
            remaining -= take
        if remaining:
            raise InsufficientStockError(
                detail=f'Insufficient dispensable stock: requested={quantity}, short by {remaining}.',
            )
        return plan

    @staticmethod
    @retry_on_conflict
    @transaction.atomic
    def dispense(*, item_id, quantity: int, batch_id=None, actor=None, note: str = '') -> list[StockMovement]:
        _validate_quantity(quantity)
        if quantity <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')
        item = InventoryRepository.get_item(item_id)

        if batch_id is not None:
            batch = InventoryRepository.get_batch(batch_id)
            if batch.is_expired:
                raise BusinessRuleViolation(detail=f'Lot {batch.lot_number} is expired and cannot be dispensed.')
            plan = [(batch, quantity)]
        else:
            plan = DispenseService.fefo_plan(item, quantity)

        # Each append asserts the version the plan was built from.
        version = item.stock_version
        movements = []
        for batch, take in plan:
            movements.append(StockLedger.append(
                item_id=item.pk,
                movement_type=MovementType.DISPENSE,
                quantity_delta=-take,
                batch_id=batch.pk if batch else None,
                unit_cost=item.unit_cost,
                actor=actor,
                note=note,
                expected_version=version,
            ))
            version += 1
        return movements

    @staticmethod
    @transaction.atomic
    def return_stock(*, item_id, quantity: int, batch_id=None, actor=None, note: str = '') -> StockMovement:
        _validate_quantity(quantity)
        if quantity <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')
        item = InventoryRepository.get_item(item_id)
        return StockLedger.append(
            item_id=item.pk,
            movement_type=MovementType.RETURN,
            quantity_delta=quantity,
            batch_id=batch_id,
            unit_cost=item.unit_cost,
            actor=actor,
            note=note,
        )

    @staticmethod
    def dispensed_between(item_id, start, end) -> int:
        total = StockMovement.objects.filter(
            item_id=item_id,
            movement_type=MovementType.DISPENSE,
            created_at__gte=start,
            created_at__lt=end,
        ).aggregate(total=Sum('quantity_delta'))['total']
        return -(total or 0)
