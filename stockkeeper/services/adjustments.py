"""
Adjustment workflow — draft → approved | rejected.

Approval is all-or-nothing: every touched position is locked and checked
before the first movement is posted, and everything runs in one
transaction.atomic() block.
"""

import logging
from collections import defaultdict
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from stockkeeper.conf import stockkeeper_settings
from stockkeeper.exceptions import (
    ImmutableStateError,
    InvalidRequestError,
    InvalidStateError,
    NegativeStockError,
    NotFoundError,
)
from stockkeeper.models.adjustment import AdjustmentLine, StockAdjustment
from stockkeeper.models.enums import (
    AdjustmentReason,
    AdjustmentStatus,
    AdjustmentType,
    MovementKind,
)
from stockkeeper.services.concurrency import unique_insert
from stockkeeper.services.ledger import StockLedger
from stockkeeper.services.numbering import next_document_number
from stockkeeper.services.validation import (
    check_line_fields,
    require_actor,
    require_id,
    to_amount,
    to_quantity,
    validate_choice,
)

logger = logging.getLogger('stockkeeper')

LINE_FIELDS = frozenset({'product_id', 'quantity', 'notes', 'unit_cost'})
DERIVED_LINE_FIELDS = frozenset({
    'current_quantity',
    'current_quantity_snapshot',
    'new_quantity',
    'unit_cost_snapshot',
    'value_impact',
    'total_value_impact',
    'adjusted_quantity',
})


def _normalize_lines(adjustment_type: str, lines) -> list[dict]:
    """
    Validate payload lines and apply the sign convention.

    increase → positive, decrease → negative, whatever sign the caller sent.
    """
    if not lines:
        raise InvalidRequestError(message='Ajuste precisa de ao menos um item', field='lines')

    normalized = []
    for index, raw in enumerate(lines):
        check_line_fields(raw, index, LINE_FIELDS, DERIVED_LINE_FIELDS)

        quantity = to_quantity(raw.get('quantity'))
        if quantity == 0:
            raise InvalidRequestError(message='Quantidade não pode ser zero', line=index)

        unit_cost = None
        if raw.get('unit_cost') is not None:
            unit_cost = to_amount(raw['unit_cost'], 'unit_cost')

        normalized.append({
            'product_id': require_id(raw.get('product_id'), 'product_id'),
            'adjusted_quantity': abs(quantity) if adjustment_type == AdjustmentType.INCREASE else -abs(quantity),
            'unit_cost': unit_cost,
            'notes': raw.get('notes') or '',
        })
    return normalized


def _write_lines(adjustment: StockAdjustment, lines: list[dict]) -> None:
    """Create lines with fresh quantity and cost snapshots."""
    for line in lines:
        position = StockLedger.get_position(line['product_id'], adjustment.store_id)

        if position.average_cost > 0:
            unit_cost = position.average_cost
        elif position.last_cost > 0:
            unit_cost = position.last_cost
        else:
            unit_cost = line['unit_cost'] or Decimal('0')

        AdjustmentLine.objects.create(
            adjustment=adjustment,
            product_id=line['product_id'],
            adjusted_quantity=line['adjusted_quantity'],
            current_quantity_snapshot=position.quantity,
            unit_cost_snapshot=unit_cost,
            notes=line['notes'],
        )


def _existing_lines_as_payload(adjustment: StockAdjustment) -> list[dict]:
    return [
        {
            'product_id': line.product_id,
            'quantity': abs(line.adjusted_quantity),
            'unit_cost': line.unit_cost_snapshot or None,
            'notes': line.notes,
        }
        for line in adjustment.lines.all()
    ]


def _movement_note(label: str, text: str) -> str:
    return f"{label}: {text}" if text else label


def _get_for_update(adjustment_id) -> StockAdjustment:
    try:
        return StockAdjustment.objects.select_for_update().get(pk=adjustment_id)
    except (StockAdjustment.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(entity='adjustment', id=adjustment_id)


class AdjustmentWorkflow:
    """Manual stock corrections."""

    @classmethod
    def create(cls, store_id, type, reason, lines, actor_id,
               adjustment_date=None, notes: str = '') -> StockAdjustment:
        """
        Create a DRAFT adjustment.

        Raises:
            InvalidRequestError: Empty lines, zero quantities, unknown
                type/reason, or client-supplied derived fields
        """
        actor_id = require_actor(actor_id)
        store_id = require_id(store_id, 'store_id')
        adjustment_type = validate_choice(AdjustmentType, type, 'type')
        reason = validate_choice(AdjustmentReason, reason, 'reason')
        normalized = _normalize_lines(adjustment_type, lines)

        with transaction.atomic():
            with unique_insert('adjustment.create'):
                adjustment = StockAdjustment.objects.create(
                    number=next_document_number(
                        StockAdjustment, stockkeeper_settings.ADJUSTMENT_NUMBER_PREFIX, 3
                    ),
                    store_id=store_id,
                    type=adjustment_type,
                    reason=reason,
                    adjustment_date=adjustment_date or timezone.localdate(),
                    notes=notes or '',
                    created_by_id=actor_id,
                )
            _write_lines(adjustment, normalized)
            adjustment.recalculate_total_value_impact()

        logger.info(
            "adjustment.created",
            extra={
                "adjustment_id": adjustment.pk,
                "number": adjustment.number,
                "store_id": store_id,
                "type": adjustment_type,
                "lines": len(normalized),
                "actor_id": actor_id,
            },
        )
        return adjustment

    @classmethod
    def update(cls, adjustment_id, actor_id, *, store_id=None, type=None, reason=None,
               adjustment_date=None, notes=None, lines=None) -> StockAdjustment:
        """
        Edit a DRAFT adjustment.

        Changing store or type re-snapshots the existing lines; passing
        lines replaces them.

        Raises:
            ImmutableStateError: If the adjustment is approved or rejected
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            adjustment = _get_for_update(adjustment_id)

            if not adjustment.is_draft:
                raise ImmutableStateError(
                    adjustment_id=adjustment.pk,
                    current=adjustment.status,
                )

            reshape = False
            if store_id is not None:
                store_id = require_id(store_id, 'store_id')
                reshape = reshape or store_id != adjustment.store_id
                adjustment.store_id = store_id
            if type is not None:
                adjustment_type = validate_choice(AdjustmentType, type, 'type')
                reshape = reshape or adjustment_type != adjustment.type
                adjustment.type = adjustment_type
            if reason is not None:
                adjustment.reason = validate_choice(AdjustmentReason, reason, 'reason')
            if adjustment_date is not None:
                adjustment.adjustment_date = adjustment_date
            if notes is not None:
                adjustment.notes = notes

            if lines is None and reshape:
                lines = _existing_lines_as_payload(adjustment)

            if lines is not None:
                normalized = _normalize_lines(adjustment.type, lines)
                adjustment.lines.all().delete()
                _write_lines(adjustment, normalized)

            adjustment.save()
            adjustment.recalculate_total_value_impact()

        logger.info(
            "adjustment.updated",
            extra={"adjustment_id": adjustment.pk, "actor_id": actor_id},
        )
        return adjustment

    @classmethod
    def delete(cls, adjustment_id, actor_id) -> None:
        """
        Delete a DRAFT adjustment.

        Raises:
            ImmutableStateError: If the adjustment is approved or rejected
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            adjustment = _get_for_update(adjustment_id)
            if not adjustment.is_draft:
                raise ImmutableStateError(
                    adjustment_id=adjustment.pk,
                    current=adjustment.status,
                )
            number = adjustment.number
            adjustment.delete()

        logger.info(
            "adjustment.deleted",
            extra={"adjustment_id": adjustment_id, "number": number, "actor_id": actor_id},
        )

    @classmethod
    def approve(cls, adjustment_id, actor_id) -> StockAdjustment:
        """
        Approve a DRAFT adjustment and post one movement per line.

        Transition: DRAFT → APPROVED

        Raises:
            InvalidStateError: If status is not DRAFT or there are no lines
            NegativeStockError: If any line would drive stock below zero;
                nothing is posted and the adjustment stays DRAFT

        Concurrency:
            - Locks the adjustment, then every touched position in
              (product, store) order
            - Validates all lines before the first write
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            adjustment = _get_for_update(adjustment_id)

            if adjustment.status != AdjustmentStatus.DRAFT:
                raise InvalidStateError(
                    adjustment_id=adjustment.pk,
                    current=adjustment.status,
                    expected=AdjustmentStatus.DRAFT,
                )

            lines = list(adjustment.lines.all())
            if not lines:
                raise InvalidStateError(
                    message='Ajuste sem itens não pode ser aprovado',
                    adjustment_id=adjustment.pk,
                )

            store_id = adjustment.store_id
            positions = StockLedger.lock_positions(
                (line.product_id, store_id) for line in lines
            )

            net = defaultdict(int)
            for line in lines:
                net[line.product_id] += line.adjusted_quantity

            for product_id, change in sorted(net.items()):
                position = positions[(product_id, store_id)]
                if position.quantity + change < 0:
                    raise NegativeStockError(
                        adjustment_id=adjustment.pk,
                        product_id=product_id,
                        store_id=store_id,
                        available=position.quantity,
                        requested=-change,
                    )

            label = str(adjustment.get_reason_display())
            for line in sorted(lines, key=lambda l: (l.product_id, l.pk)):
                increase = line.adjusted_quantity > 0
                StockLedger.apply_movement(
                    product_id=line.product_id,
                    store_id=store_id,
                    delta=line.adjusted_quantity,
                    kind=MovementKind.ADJUSTMENT_INCREASE if increase else MovementKind.ADJUSTMENT_DECREASE,
                    reference=adjustment,
                    unit_cost=line.unit_cost_snapshot if increase else None,
                    actor_id=actor_id,
                    note=_movement_note(label, line.notes or adjustment.notes),
                )

            adjustment.status = AdjustmentStatus.APPROVED
            adjustment.approved_by_id = actor_id
            adjustment.approved_at = timezone.now()
            adjustment.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])

        logger.info(
            "adjustment.approved",
            extra={
                "adjustment_id": adjustment.pk,
                "number": adjustment.number,
                "lines": len(lines),
                "actor_id": actor_id,
            },
        )
        return adjustment

    @classmethod
    def reject(cls, adjustment_id, actor_id) -> StockAdjustment:
        """
        Reject a DRAFT adjustment. No ledger effect.

        Transition: DRAFT → REJECTED

        Raises:
            InvalidStateError: If status is not DRAFT
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            adjustment = _get_for_update(adjustment_id)

            if adjustment.status != AdjustmentStatus.DRAFT:
                raise InvalidStateError(
                    adjustment_id=adjustment.pk,
                    current=adjustment.status,
                    expected=AdjustmentStatus.DRAFT,
                )

            adjustment.status = AdjustmentStatus.REJECTED
            adjustment.approved_by_id = actor_id
            adjustment.approved_at = timezone.now()
            adjustment.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])

        logger.info(
            "adjustment.rejected",
            extra={"adjustment_id": adjustment.pk, "actor_id": actor_id},
        )
        return adjustment
