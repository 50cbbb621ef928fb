"""
Sales posting — the sales subsystem's write path into the ledger.
"""

import logging
from collections import defaultdict

from django.db import transaction
from django.utils import timezone

from stockkeeper.exceptions import InvalidRequestError, InvalidStateError, NegativeStockError
from stockkeeper.models.enums import MovementKind
from stockkeeper.models.sales import SalesLine
from stockkeeper.services.concurrency import unique_insert
from stockkeeper.services.ledger import StockLedger
from stockkeeper.services.validation import (
    check_line_fields,
    require_actor,
    require_id,
    to_amount,
    to_quantity,
)

logger = logging.getLogger('stockkeeper')

LINE_FIELDS = frozenset({'product_id', 'quantity', 'unit_price_net'})


class SalesPosting:

    @classmethod
    def post_sale(cls, sales_transaction_id, store_id, lines, actor_id,
                  posted_at=None) -> list[SalesLine]:
        """
        Record a sale and take its quantities out of stock.

        Args:
            lines: [{'product_id', 'quantity', 'unit_price_net'}, ...]

        Raises:
            InvalidStateError: Transaction already posted (code ALREADY_POSTED)
            NegativeStockError: Not enough stock for some line; nothing posted
            ConcurrencyConflictError: Another posting of the same transaction
                committed first
        """
        actor_id = require_actor(actor_id)
        sales_transaction_id = require_id(sales_transaction_id, 'sales_transaction_id')
        store_id = require_id(store_id, 'store_id')

        if not lines:
            raise InvalidRequestError(message='Venda precisa de ao menos um item', field='lines')

        normalized = []
        for index, raw in enumerate(lines):
            check_line_fields(raw, index, LINE_FIELDS, frozenset())
            quantity = to_quantity(raw.get('quantity'))
            if quantity <= 0:
                raise InvalidRequestError(
                    message='Quantidade vendida deve ser positiva',
                    line=index,
                    quantity=quantity,
                )
            normalized.append({
                'product_id': require_id(raw.get('product_id'), 'product_id'),
                'quantity': quantity,
                'unit_price_net': to_amount(raw.get('unit_price_net', 0), 'unit_price_net'),
            })

        with transaction.atomic():
            positions = StockLedger.lock_positions(
                (item['product_id'], store_id) for item in normalized
            )

            if cls._already_posted(sales_transaction_id):
                raise InvalidStateError(
                    'ALREADY_POSTED',
                    sales_transaction_id=sales_transaction_id,
                )

            needed = defaultdict(int)
            for item in normalized:
                needed[item['product_id']] += item['quantity']
            for product_id, quantity in sorted(needed.items()):
                available = positions[(product_id, store_id)].quantity
                if quantity > available:
                    raise NegativeStockError(
                        sales_transaction_id=sales_transaction_id,
                        product_id=product_id,
                        store_id=store_id,
                        available=available,
                        requested=quantity,
                    )

            posted_at = posted_at or timezone.now()
            created = []
            # A concurrent posting of the same transaction collides on line 1
            with unique_insert('sale.post'):
                for number, item in enumerate(normalized, start=1):
                    created.append(SalesLine.objects.create(
                        sales_transaction_id=sales_transaction_id,
                        store_id=store_id,
                        line_number=number,
                        product_id=item['product_id'],
                        quantity_sold=item['quantity'],
                        unit_price_net=item['unit_price_net'],
                        posted_at=posted_at,
                    ))

            for sales_line in sorted(created, key=lambda l: (l.product_id, l.pk)):
                StockLedger.apply_movement(
                    product_id=sales_line.product_id,
                    store_id=store_id,
                    delta=-sales_line.quantity_sold,
                    kind=MovementKind.SALE,
                    reference=sales_line,
                    actor_id=actor_id,
                    note=f"Venda {sales_transaction_id}",
                )

        logger.info(
            "sale.posted",
            extra={
                "sales_transaction_id": sales_transaction_id,
                "store_id": store_id,
                "lines": len(created),
                "actor_id": actor_id,
            },
        )
        return created

    @classmethod
    def _already_posted(cls, sales_transaction_id: int) -> bool:
        return SalesLine.objects.filter(sales_transaction_id=sales_transaction_id).exists()
