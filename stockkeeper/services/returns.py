"""
Return workflow — pending → approved | rejected.

Create and edit hold row locks on every sales line of the transaction for
the whole check-then-insert, so two concurrent requests can never reserve
the same units.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from stockkeeper.conf import stockkeeper_settings
from stockkeeper.exceptions import (
    DuplicatePendingReturnError,
    ImmutableStateError,
    InvalidRequestError,
    InvalidStateError,
    NoEligibleItemsError,
    NotFoundError,
    OverReturnError,
)
from stockkeeper.models.enums import ItemCondition, MovementKind, ReturnStatus
from stockkeeper.models.returns import ReturnLine, SalesReturn
from stockkeeper.services.concurrency import unique_insert
from stockkeeper.services.eligibility import ReturnEligibilityTracker
from stockkeeper.services.ledger import StockLedger
from stockkeeper.services.numbering import next_document_number
from stockkeeper.services.validation import (
    check_line_fields,
    require_actor,
    require_id,
    to_quantity,
    validate_choice,
)

logger = logging.getLogger('stockkeeper')

LINE_FIELDS = frozenset({'sales_line_id', 'quantity', 'condition', 'reason'})
DERIVED_LINE_FIELDS = frozenset({'unit_price_net', 'refund_amount', 'product_id'})

CENT = Decimal('0.01')


def _normalize_lines(lines) -> list[dict]:
    if not lines:
        raise InvalidRequestError(message='Devolução precisa de ao menos um item', field='lines')

    normalized = []
    for index, raw in enumerate(lines):
        check_line_fields(raw, index, LINE_FIELDS, DERIVED_LINE_FIELDS)

        quantity = to_quantity(raw.get('quantity'))
        if quantity <= 0:
            raise InvalidRequestError(
                message='Quantidade devolvida deve ser positiva',
                line=index,
                quantity=quantity,
            )

        normalized.append({
            'sales_line_id': require_id(raw.get('sales_line_id'), 'sales_line_id'),
            'quantity': quantity,
            'condition': validate_choice(
                ItemCondition, raw.get('condition') or ItemCondition.GOOD, 'condition'
            ),
            'reason': raw.get('reason') or '',
        })
    return normalized


def _check_eligibility(sales_transaction_id, sales_lines, normalized, exclude_return_id=None):
    """
    Validate requested quantities against current eligibility.

    Caller must hold lock_transaction() for the transaction.
    """
    by_id = {line.pk: line for line in sales_lines}

    for item in normalized:
        if item['sales_line_id'] not in by_id:
            raise InvalidRequestError(
                message='Item não pertence à transação',
                sales_transaction_id=sales_transaction_id,
                sales_line_id=item['sales_line_id'],
            )

    eligible = ReturnEligibilityTracker.eligible_quantities(
        sales_transaction_id, exclude_return_id=exclude_return_id
    )

    # Duplicated lines in one request count together
    requested = defaultdict(int)
    for item in normalized:
        requested[item['sales_line_id']] += item['quantity']

    if all(eligible[line_id] == 0 for line_id in requested):
        raise NoEligibleItemsError(
            sales_transaction_id=sales_transaction_id,
            sales_line_ids=sorted(requested),
        )

    for line_id, quantity in sorted(requested.items()):
        if quantity > eligible[line_id]:
            raise OverReturnError(
                sales_line_id=line_id,
                product_id=by_id[line_id].product_id,
                available=eligible[line_id],
                requested=quantity,
            )

    return by_id


def _write_lines(sales_return: SalesReturn, normalized, by_id) -> Decimal:
    total = Decimal('0')
    for item in normalized:
        sales_line = by_id[item['sales_line_id']]
        refund = (sales_line.unit_price_net * item['quantity']).quantize(CENT)
        ReturnLine.objects.create(
            sales_return=sales_return,
            sales_line=sales_line,
            product_id=sales_line.product_id,
            quantity=item['quantity'],
            condition=item['condition'],
            unit_price_net=sales_line.unit_price_net,
            refund_amount=refund,
            reason=item['reason'],
        )
        total += refund
    return total


def _get_for_update(return_id) -> SalesReturn:
    try:
        return SalesReturn.objects.select_for_update().get(pk=return_id)
    except (SalesReturn.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(entity='return', id=return_id)


class ReturnWorkflow:
    """Customer returns against posted sales."""

    @classmethod
    def create(cls, sales_transaction_id, reason, lines, actor_id,
               store_id=None, return_date=None) -> SalesReturn:
        """
        Create a PENDING return, reserving the requested quantities.

        Raises:
            NotFoundError: Transaction has no posted lines
            DuplicatePendingReturnError: Another return is still pending
            InvalidStateError: Sale is outside the return window
                (code RETURN_WINDOW_CLOSED)
            NoEligibleItemsError: Every targeted line is fully reserved
            OverReturnError: A requested quantity exceeds eligibility
        """
        actor_id = require_actor(actor_id)
        sales_transaction_id = require_id(sales_transaction_id, 'sales_transaction_id')
        if not reason:
            raise InvalidRequestError(message='Motivo é obrigatório', field='reason')
        normalized = _normalize_lines(lines)

        with transaction.atomic():
            sales_lines = ReturnEligibilityTracker.lock_transaction(sales_transaction_id)
            if not sales_lines:
                raise NotFoundError(entity='sales_transaction', id=sales_transaction_id)

            sale_store_id = sales_lines[0].store_id
            if store_id is not None and require_id(store_id, 'store_id') != sale_store_id:
                raise InvalidRequestError(
                    message='Loja diferente da loja da venda',
                    store_id=store_id,
                    expected=sale_store_id,
                )

            if ReturnEligibilityTracker.transaction_has_open_return(sales_transaction_id):
                raise DuplicatePendingReturnError(sales_transaction_id=sales_transaction_id)

            window = stockkeeper_settings.RETURN_WINDOW_DAYS
            sold_at = min(line.posted_at for line in sales_lines)
            if window and sold_at < timezone.now() - timedelta(days=window):
                raise InvalidStateError(
                    'RETURN_WINDOW_CLOSED',
                    sales_transaction_id=sales_transaction_id,
                    window_days=window,
                )

            by_id = _check_eligibility(sales_transaction_id, sales_lines, normalized)

            with unique_insert('return.create'):
                sales_return = SalesReturn.objects.create(
                    number=next_document_number(
                        SalesReturn, stockkeeper_settings.RETURN_NUMBER_PREFIX, 4
                    ),
                    sales_transaction_id=sales_transaction_id,
                    store_id=sale_store_id,
                    return_date=return_date or timezone.localdate(),
                    reason=reason,
                    created_by_id=actor_id,
                )
            sales_return.refund_amount = _write_lines(sales_return, normalized, by_id)
            sales_return.save(update_fields=['refund_amount', 'updated_at'])

        logger.info(
            "return.created",
            extra={
                "return_id": sales_return.pk,
                "number": sales_return.number,
                "sales_transaction_id": sales_transaction_id,
                "refund_amount": str(sales_return.refund_amount),
                "actor_id": actor_id,
            },
        )
        return sales_return

    @classmethod
    def edit(cls, return_id, actor_id, reason=None, return_date=None, lines=None) -> SalesReturn:
        """
        Edit a PENDING return.

        New lines are validated against eligibility excluding the return's
        own reservation.

        Raises:
            ImmutableStateError: If the return is approved or rejected
        """
        actor_id = require_actor(actor_id)
        normalized = _normalize_lines(lines) if lines is not None else None

        with transaction.atomic():
            sales_return = _get_for_update(return_id)
            if not sales_return.is_pending:
                raise ImmutableStateError(return_id=sales_return.pk, current=sales_return.status)

            if reason is not None:
                if not reason:
                    raise InvalidRequestError(message='Motivo é obrigatório', field='reason')
                sales_return.reason = reason
            if return_date is not None:
                sales_return.return_date = return_date

            if normalized is not None:
                txn = sales_return.sales_transaction_id
                sales_lines = ReturnEligibilityTracker.lock_transaction(txn)
                by_id = _check_eligibility(
                    txn, sales_lines, normalized, exclude_return_id=sales_return.pk
                )
                sales_return.lines.all().delete()
                sales_return.refund_amount = _write_lines(sales_return, normalized, by_id)

            sales_return.save()

        logger.info(
            "return.updated",
            extra={"return_id": sales_return.pk, "actor_id": actor_id},
        )
        return sales_return

    @classmethod
    def delete(cls, return_id, actor_id) -> None:
        """
        Delete a PENDING return, releasing its reservation.

        Raises:
            ImmutableStateError: If the return is approved or rejected
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            sales_return = _get_for_update(return_id)
            if not sales_return.is_pending:
                raise ImmutableStateError(return_id=sales_return.pk, current=sales_return.status)
            number = sales_return.number
            sales_return.delete()

        logger.info(
            "return.deleted",
            extra={"return_id": return_id, "number": number, "actor_id": actor_id},
        )

    @classmethod
    def approve(cls, return_id, actor_id) -> SalesReturn:
        """
        Approve a PENDING return.

        Transition: PENDING → APPROVED

        Lines in good condition go back to stock as return_restock
        movements; damaged and defective lines are refunded only.

        Raises:
            InvalidStateError: If status is not PENDING
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            sales_return = _get_for_update(return_id)

            if sales_return.status != ReturnStatus.PENDING:
                raise InvalidStateError(
                    return_id=sales_return.pk,
                    current=sales_return.status,
                    expected=ReturnStatus.PENDING,
                )

            lines = list(sales_return.lines.all())
            restock = sorted(
                (line for line in lines if line.restocks),
                key=lambda l: (l.product_id, l.pk),
            )
            store_id = sales_return.store_id

            StockLedger.lock_positions((line.product_id, store_id) for line in restock)
            for line in restock:
                StockLedger.apply_movement(
                    product_id=line.product_id,
                    store_id=store_id,
                    delta=line.quantity,
                    kind=MovementKind.RETURN_RESTOCK,
                    reference=sales_return,
                    actor_id=actor_id,
                    note=f"Devolução {sales_return.number}",
                )

            sales_return.status = ReturnStatus.APPROVED
            sales_return.refund_amount = sum((line.refund_amount for line in lines), Decimal('0'))
            sales_return.processed_by_id = actor_id
            sales_return.processed_at = timezone.now()
            sales_return.save(update_fields=[
                'status', 'refund_amount', 'processed_by', 'processed_at', 'updated_at',
            ])

        logger.info(
            "return.approved",
            extra={
                "return_id": sales_return.pk,
                "number": sales_return.number,
                "restocked_lines": len(restock),
                "refund_amount": str(sales_return.refund_amount),
                "actor_id": actor_id,
            },
        )
        return sales_return

    @classmethod
    def reject(cls, return_id, actor_id) -> SalesReturn:
        """
        Reject a PENDING return. Its quantities become eligible again.

        Transition: PENDING → REJECTED

        Raises:
            InvalidStateError: If status is not PENDING
        """
        actor_id = require_actor(actor_id)

        with transaction.atomic():
            sales_return = _get_for_update(return_id)

            if sales_return.status != ReturnStatus.PENDING:
                raise InvalidStateError(
                    return_id=sales_return.pk,
                    current=sales_return.status,
                    expected=ReturnStatus.PENDING,
                )

            sales_return.status = ReturnStatus.REJECTED
            sales_return.processed_by_id = actor_id
            sales_return.processed_at = timezone.now()
            sales_return.save(update_fields=['status', 'processed_by', 'processed_at', 'updated_at'])

        logger.info(
            "return.rejected",
            extra={"return_id": sales_return.pk, "actor_id": actor_id},
        )
        return sales_return
