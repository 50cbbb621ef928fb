"""
Stock ledger — authoritative quantity per (product, store) and the
append-only movement log.

apply_movement() is the only code path that changes StockPosition.
Workflows call it inside their own transaction.atomic() block, so a
failure on any line rolls back every movement of the approval.
"""

import logging
from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.db import transaction
from django.db.models import F, Sum
from django.db.models.functions import Coalesce

from stockkeeper.conf import stockkeeper_settings
from stockkeeper.exceptions import InvalidRequestError, NegativeStockError
from stockkeeper.models.enums import MovementKind
from stockkeeper.models.movement import StockMovement
from stockkeeper.models.position import StockPosition

logger = logging.getLogger('stockkeeper')


def _cost_quantum() -> Decimal:
    return Decimal(1).scaleb(-stockkeeper_settings.COST_DECIMAL_PLACES)


def weighted_average_cost(old_quantity: int, old_cost: Decimal,
                          delta: int, unit_cost: Decimal) -> Decimal:
    """(oldQty·oldCost + delta·unitCost) / (oldQty + delta), for delta > 0."""
    total_quantity = old_quantity + delta
    if total_quantity <= 0:
        return old_cost
    value = old_quantity * Decimal(old_cost) + delta * Decimal(unit_cost)
    return (value / total_quantity).quantize(_cost_quantum())


class StockLedger:
    """Position reads and the single mutator of stock quantities."""

    # ══════════════════════════════════════════════════════════════
    # QUERIES (no locking, committed reads)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_position(cls, product_id: int, store_id: int) -> StockPosition:
        """
        Current position. Never blocks on writers.

        Returns an unsaved zero position when the product was never stocked
        at the store.
        """
        position = StockPosition.objects.filter(
            product_id=product_id,
            store_id=store_id,
        ).first()
        if position is None:
            return StockPosition(product_id=product_id, store_id=store_id)
        return position

    @classmethod
    def movements(cls, product_id: int | None = None, store_id: int | None = None,
                  kind: str | None = None, reference=None, since=None, until=None):
        """Movement history, oldest first (reports read through this)."""
        qs = StockMovement.objects.select_related('position')

        if product_id is not None:
            qs = qs.filter(position__product_id=product_id)
        if store_id is not None:
            qs = qs.filter(position__store_id=store_id)
        if kind is not None:
            qs = qs.filter(kind=kind)
        if reference is not None:
            qs = qs.filter(
                reference_type=ContentType.objects.get_for_model(reference),
                reference_id=reference.pk,
            )
        if since is not None:
            qs = qs.filter(occurred_at__gte=since)
        if until is not None:
            qs = qs.filter(occurred_at__lt=until)

        return qs.order_by('occurred_at', 'pk')

    @classmethod
    def reconstructed_quantity(cls, product_id: int, store_id: int) -> int:
        """Σ delta from the movement log."""
        return StockMovement.objects.filter(
            position__product_id=product_id,
            position__store_id=store_id,
        ).aggregate(t=Coalesce(Sum('delta'), 0))['t']

    @classmethod
    def discrepancies(cls, product_id: int | None = None, store_id: int | None = None):
        """Positions whose cached quantity differs from their movement log."""
        qs = StockPosition.objects.all()
        if product_id is not None:
            qs = qs.filter(product_id=product_id)
        if store_id is not None:
            qs = qs.filter(store_id=store_id)
        return qs.annotate(
            log_quantity=Coalesce(Sum('movements__delta'), 0)
        ).exclude(quantity=F('log_quantity')).order_by('store_id', 'product_id')

    @classmethod
    def low_stock(cls, store_id: int | None = None) -> list[StockPosition]:
        """
        Positions at or below their minimum threshold.

        Informational: thresholds never block an approval.
        """
        qs = StockPosition.objects.low_stock()
        if store_id is not None:
            qs = qs.for_store(store_id)

        positions = list(qs.order_by('store_id', 'product_id'))
        for position in positions:
            logger.warning(
                "stock.low",
                extra={
                    "product_id": position.product_id,
                    "store_id": position.store_id,
                    "quantity": position.quantity,
                    "minimum_threshold": position.minimum_threshold,
                },
            )
        return positions

    # ══════════════════════════════════════════════════════════════
    # LOCKING
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def lock_positions(cls, keys) -> dict[tuple[int, int], StockPosition]:
        """
        Lock several positions in (product_id, store_id) order.

        Must run inside transaction.atomic(). The fixed order keeps two
        approvals touching the same products from deadlocking.
        """
        return {
            (product_id, store_id): cls._lock_position(product_id, store_id)
            for product_id, store_id in sorted(set(keys))
        }

    @classmethod
    def _lock_position(cls, product_id: int, store_id: int) -> StockPosition:
        position, _ = StockPosition.objects.select_for_update().get_or_create(
            product_id=product_id,
            store_id=store_id,
        )
        return position

    # ══════════════════════════════════════════════════════════════
    # MUTATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def apply_movement(cls, product_id: int, store_id: int, delta: int, kind: str,
                       reference=None, unit_cost: Decimal | None = None,
                       actor_id: int | None = None, note: str = '') -> StockMovement:
        """
        Post one movement and update the position.

        Positive deltas re-average the cost with unit_cost (None keeps the
        current average, e.g. restocked returns).

        Raises:
            NegativeStockError: If quantity_after would be < 0
            InvalidRequestError: If delta is zero/non-integer or kind unknown

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on StockPosition
            - Visible to readers once the outermost transaction commits
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidRequestError(
                message='Variação deve ser um inteiro diferente de zero',
                delta=delta,
            )
        if kind not in MovementKind.values:
            raise InvalidRequestError(message='Tipo de movimento desconhecido', kind=kind)

        reference_type = None
        reference_id = None
        if reference is not None:
            reference_type = ContentType.objects.get_for_model(reference)
            reference_id = reference.pk

        with transaction.atomic():
            position = cls._lock_position(product_id, store_id)
            before = position.quantity
            after = before + delta

            if after < 0:
                raise NegativeStockError(
                    product_id=product_id,
                    store_id=store_id,
                    available=before,
                    requested=-delta,
                )

            update_fields = ['quantity', 'updated_at']
            if delta > 0:
                cost = position.average_cost if unit_cost is None else Decimal(unit_cost)
                position.average_cost = weighted_average_cost(
                    before, position.average_cost, delta, cost
                )
                update_fields.append('average_cost')
                if unit_cost is not None:
                    position.last_cost = cost
                    update_fields.append('last_cost')
            else:
                # Outgoing units are valued at the current average
                cost = position.average_cost

            position.quantity = after

            movement = StockMovement.objects.create(
                position=position,
                delta=delta,
                quantity_before=before,
                quantity_after=after,
                unit_cost=cost,
                kind=kind,
                reference_type=reference_type,
                reference_id=reference_id,
                note=note[:255],
                actor_id=actor_id,
            )
            position.save(update_fields=update_fields)

            logger.info(
                "ledger.movement",
                extra={
                    "movement_id": movement.pk,
                    "product_id": product_id,
                    "store_id": store_id,
                    "delta": delta,
                    "kind": kind,
                    "quantity_after": after,
                    "average_cost": str(position.average_cost),
                },
            )
            return movement

    @classmethod
    def recalculate(cls, product_id: int, store_id: int) -> int:
        """
        Rewrite the cached quantity from the movement log.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            Quantity reconstructed from the log
        """
        with transaction.atomic():
            position = StockPosition.objects.select_for_update().filter(
                product_id=product_id,
                store_id=store_id,
            ).first()
            if position is None:
                return 0

            total = position.movements.aggregate(t=Coalesce(Sum('delta'), 0))['t']

            if total != position.quantity:
                old = position.quantity
                position.quantity = total
                position.save(update_fields=['quantity', 'updated_at'])
                logger.warning(
                    f"StockPosition {position.pk} recalculated: {old} → {total} "
                    f"(diff: {total - old})"
                )

            return total
