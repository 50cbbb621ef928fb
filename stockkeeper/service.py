"""
Reconciliation Service — the single public interface of Stockkeeper.

Usage:
    from stockkeeper import reconciliation, StockkeeperError

    adj = reconciliation.request_adjustment(
        store_id=1, type='decrease', reason='damaged_goods',
        lines=[{'product_id': 42, 'quantity': 3}], actor_id=user.pk,
    )
    reconciliation.approve('adjustment', adj.pk, actor_id=manager.pk)
    reconciliation.current_stock(42, 1).quantity
"""

import logging
from decimal import Decimal

from django.db.models import DecimalField, ExpressionWrapper, F, Sum
from django.db.models.functions import Coalesce

from stockkeeper.adapters.permissions import get_permission_checker
from stockkeeper.exceptions import InvalidRequestError, PermissionDeniedError
from stockkeeper.models.enums import RequestKind
from stockkeeper.models.position import StockPosition
from stockkeeper.protocols import permissions as keys
from stockkeeper.services.adjustments import AdjustmentWorkflow
from stockkeeper.services.concurrency import conflict_guard
from stockkeeper.services.eligibility import ReturnEligibilityTracker
from stockkeeper.services.ledger import StockLedger
from stockkeeper.services.returns import ReturnWorkflow
from stockkeeper.services.sales import SalesPosting

logger = logging.getLogger('stockkeeper')


class Reconciliation:
    """
    Single interface for inventory mutation and reconciliation.

    Every write checks the configured permission gate first, then delegates
    to its workflow. Lock and serialization failures surface as
    ConcurrencyConflictError; the whole call can be retried.
    """

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def current_stock(cls, product_id: int, store_id: int) -> StockPosition:
        """Current position (unsaved zero position if never stocked)."""
        return StockLedger.get_position(product_id, store_id)

    @classmethod
    def stock_value(cls, store_id: int | None = None, product_id: int | None = None) -> Decimal:
        """Σ quantity × average cost over the matching positions."""
        qs = StockPosition.objects.all()
        if store_id is not None:
            qs = qs.for_store(store_id)
        if product_id is not None:
            qs = qs.for_product(product_id)

        value = ExpressionWrapper(
            F('quantity') * F('average_cost'),
            output_field=DecimalField(max_digits=24, decimal_places=4),
        )
        return qs.aggregate(t=Coalesce(Sum(value), Decimal('0')))['t']

    @classmethod
    def movement_history(cls, product_id: int | None = None, store_id: int | None = None, **filters):
        """Movement log, oldest first. Accepts kind, reference, since, until."""
        return StockLedger.movements(product_id=product_id, store_id=store_id, **filters)

    @classmethod
    def low_stock(cls, store_id: int | None = None) -> list[StockPosition]:
        return StockLedger.low_stock(store_id)

    @classmethod
    def returnable_lines(cls, sales_transaction_id: int) -> list[dict]:
        return ReturnEligibilityTracker.returnable_lines(sales_transaction_id)

    # ══════════════════════════════════════════════════════════════
    # ADJUSTMENTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def request_adjustment(cls, store_id, type, reason, lines, actor_id,
                           adjustment_date=None, notes: str = ''):
        cls._check(actor_id, keys.ADJUSTMENT_CREATE)
        with conflict_guard('adjustment.create'):
            return AdjustmentWorkflow.create(
                store_id=store_id,
                type=type,
                reason=reason,
                lines=lines,
                actor_id=actor_id,
                adjustment_date=adjustment_date,
                notes=notes,
            )

    @classmethod
    def update_adjustment(cls, adjustment_id, actor_id, **changes):
        cls._check(actor_id, keys.ADJUSTMENT_EDIT)
        with conflict_guard('adjustment.update'):
            return AdjustmentWorkflow.update(adjustment_id, actor_id, **changes)

    @classmethod
    def delete_adjustment(cls, adjustment_id, actor_id) -> None:
        cls._check(actor_id, keys.ADJUSTMENT_DELETE)
        with conflict_guard('adjustment.delete'):
            AdjustmentWorkflow.delete(adjustment_id, actor_id)

    # ══════════════════════════════════════════════════════════════
    # RETURNS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def request_return(cls, sales_transaction_id, reason, lines, actor_id,
                       store_id=None, return_date=None):
        cls._check(actor_id, keys.RETURN_CREATE)
        with conflict_guard('return.create'):
            return ReturnWorkflow.create(
                sales_transaction_id=sales_transaction_id,
                reason=reason,
                lines=lines,
                actor_id=actor_id,
                store_id=store_id,
                return_date=return_date,
            )

    @classmethod
    def edit_return(cls, return_id, actor_id, reason=None, return_date=None, lines=None):
        cls._check(actor_id, keys.RETURN_EDIT)
        with conflict_guard('return.edit'):
            return ReturnWorkflow.edit(
                return_id, actor_id, reason=reason, return_date=return_date, lines=lines,
            )

    @classmethod
    def delete_return(cls, return_id, actor_id) -> None:
        cls._check(actor_id, keys.RETURN_DELETE)
        with conflict_guard('return.delete'):
            ReturnWorkflow.delete(return_id, actor_id)

    # ══════════════════════════════════════════════════════════════
    # SALES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def post_sale(cls, sales_transaction_id, store_id, lines, actor_id, posted_at=None):
        """Sales subsystem write path; gated by the sales collaborator, not here."""
        with conflict_guard('sale.post'):
            return SalesPosting.post_sale(
                sales_transaction_id=sales_transaction_id,
                store_id=store_id,
                lines=lines,
                actor_id=actor_id,
                posted_at=posted_at,
            )

    # ══════════════════════════════════════════════════════════════
    # APPROVAL
    # ══════════════════════════════════════════════════════════════

    _APPROVAL = {
        RequestKind.ADJUSTMENT: (AdjustmentWorkflow, keys.ADJUSTMENT_APPROVE, keys.ADJUSTMENT_REJECT),
        RequestKind.RETURN: (ReturnWorkflow, keys.RETURN_APPROVE, keys.RETURN_REJECT),
    }

    @classmethod
    def approve(cls, kind: str, id, actor_id):
        """
        Approve an adjustment or a return.

        Args:
            kind: 'adjustment' or 'return'

        Raises:
            InvalidRequestError: Unknown kind
            PermissionDeniedError: Actor may not approve this kind
            InvalidStateError: Request already approved or rejected
        """
        workflow, approve_key, _ = cls._route(kind)
        cls._check(actor_id, approve_key)
        with conflict_guard(f'{kind}.approve'):
            return workflow.approve(id, actor_id)

    @classmethod
    def reject(cls, kind: str, id, actor_id):
        """Reject an adjustment or a return. Same errors as approve()."""
        workflow, _, reject_key = cls._route(kind)
        cls._check(actor_id, reject_key)
        with conflict_guard(f'{kind}.reject'):
            return workflow.reject(id, actor_id)

    # ══════════════════════════════════════════════════════════════
    # INTERNAL
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _route(cls, kind):
        if kind not in RequestKind.values:
            raise InvalidRequestError(
                message='Tipo de solicitação desconhecido',
                kind=kind,
                allowed=list(RequestKind.values),
            )
        return cls._APPROVAL[RequestKind(kind)]

    @classmethod
    def _check(cls, actor_id, permission_key: str) -> None:
        if actor_id is None:
            raise InvalidRequestError(message='Usuário responsável é obrigatório', field='actor_id')
        if not get_permission_checker().allowed(actor_id, permission_key):
            logger.warning(
                "permission.denied",
                extra={"actor_id": actor_id, "permission": permission_key},
            )
            raise PermissionDeniedError(actor_id=actor_id, permission=permission_key)
