"""
Return eligibility — how much of each sold line can still come back.

    eligible = quantity_sold − Σ quantity of PENDING/APPROVED return lines

This module is the only place that formula lives.
"""

from django.db.models import Sum
from django.db.models.functions import Coalesce

from stockkeeper.models.enums import ACTIVE_RETURN_STATUSES, ReturnStatus
from stockkeeper.models.returns import ReturnLine, SalesReturn
from stockkeeper.models.sales import SalesLine


class ReturnEligibilityTracker:
    """Eligibility queries over sales lines and their return reservations."""

    @classmethod
    def reserved_quantity(cls, sales_line_id: int, exclude_return_id: int | None = None) -> int:
        qs = ReturnLine.objects.filter(
            sales_line_id=sales_line_id,
            sales_return__status__in=ACTIVE_RETURN_STATUSES,
        )
        if exclude_return_id is not None:
            qs = qs.exclude(sales_return_id=exclude_return_id)
        return qs.aggregate(t=Coalesce(Sum('quantity'), 0))['t']

    @classmethod
    def eligible_quantity(cls, sales_line_id: int, exclude_return_id: int | None = None) -> int:
        """
        Quantity of a sales line that may still be returned.

        Unknown lines have nothing eligible.
        """
        line = SalesLine.objects.filter(pk=sales_line_id).first()
        if line is None:
            return 0
        reserved = cls.reserved_quantity(sales_line_id, exclude_return_id)
        return max(line.quantity_sold - reserved, 0)

    @classmethod
    def eligible_quantities(cls, sales_transaction_id: int,
                            exclude_return_id: int | None = None) -> dict[int, int]:
        """Eligible quantity per sales line id of one transaction."""
        lines = SalesLine.objects.filter(
            sales_transaction_id=sales_transaction_id,
        ).order_by('pk')

        reserved_qs = ReturnLine.objects.filter(
            sales_line__sales_transaction_id=sales_transaction_id,
            sales_return__status__in=ACTIVE_RETURN_STATUSES,
        )
        if exclude_return_id is not None:
            reserved_qs = reserved_qs.exclude(sales_return_id=exclude_return_id)

        reserved = dict(
            reserved_qs.values('sales_line_id')
            .annotate(t=Sum('quantity'))
            .values_list('sales_line_id', 't')
        )

        return {
            line.pk: max(line.quantity_sold - reserved.get(line.pk, 0), 0)
            for line in lines
        }

    @classmethod
    def transaction_has_open_return(cls, sales_transaction_id: int,
                                    exclude_return_id: int | None = None) -> bool:
        """True while a PENDING return exists for the transaction."""
        qs = SalesReturn.objects.filter(
            sales_transaction_id=sales_transaction_id,
            status=ReturnStatus.PENDING,
        )
        if exclude_return_id is not None:
            qs = qs.exclude(pk=exclude_return_id)
        return qs.exists()

    @classmethod
    def lock_transaction(cls, sales_transaction_id: int) -> list[SalesLine]:
        """
        Lock every sales line of a transaction, in pk order.

        Must run inside transaction.atomic(). Holding these locks serializes
        return creation and editing for the transaction, so the eligibility
        check and the insert that follows act on the same snapshot.
        """
        return list(
            SalesLine.objects.select_for_update()
            .filter(sales_transaction_id=sales_transaction_id)
            .order_by('pk')
        )

    @classmethod
    def returnable_lines(cls, sales_transaction_id: int) -> list[dict]:
        """
        Per-line summary for building a return form.

        Returns:
            [{'sales_line_id', 'product_id', 'quantity_sold', 'reserved',
              'eligible', 'unit_price_net'}, ...]
        """
        eligible = cls.eligible_quantities(sales_transaction_id)
        lines = SalesLine.objects.filter(
            sales_transaction_id=sales_transaction_id,
        ).order_by('pk')

        return [
            {
                'sales_line_id': line.pk,
                'product_id': line.product_id,
                'quantity_sold': line.quantity_sold,
                'reserved': line.quantity_sold - eligible[line.pk],
                'eligible': eligible[line.pk],
                'unit_price_net': line.unit_price_net,
            }
            for line in lines
        ]
