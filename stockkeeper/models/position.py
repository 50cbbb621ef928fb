"""
StockPosition model — quantity and valuation of one product at one store.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F
from django.utils.translation import gettext_lazy as _


class StockPositionQuerySet(models.QuerySet):
    """Helpers for position queries (reports read through these)."""

    def for_store(self, store_id):
        return self.filter(store_id=store_id)

    def for_product(self, product_id):
        return self.filter(product_id=product_id)

    def low_stock(self):
        """At or below the configured minimum (informational only)."""
        return self.filter(minimum_threshold__gt=0, quantity__lte=F('minimum_threshold'))


class StockPosition(models.Model):
    """
    Current quantity of a product at a store.

    Coordinates:
    - product_id: WHAT (owned by the catalog, referenced by id)
    - store_id: WHERE (owned by store master data, referenced by id)

    Rules:
    - quantity is a cache of the movement log, never negative
    - only StockLedger.apply_movement() changes quantity/average_cost
    - use StockLedger.recalculate() for audit/correction
    """

    product_id = models.PositiveBigIntegerField(
        verbose_name=_('ID do Produto'),
    )
    store_id = models.PositiveBigIntegerField(
        verbose_name=_('ID da Loja'),
    )

    # Quantity cache (updated under row lock by the ledger)
    quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Quantidade'),
    )
    average_cost = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Custo Médio'),
    )
    last_cost = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Último Custo'),
    )
    minimum_threshold = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Estoque Mínimo'),
        help_text=_('Apenas informativo: não bloqueia aprovações.'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockPositionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Posição de Estoque')
        verbose_name_plural = _('Posições de Estoque')
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'store_id'],
                name='unique_stock_position',
            )
        ]
        indexes = [
            models.Index(fields=['store_id'], name='stk_pos_store_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def value(self) -> Decimal:
        """Stock value = quantity × average cost."""
        return self.quantity * self.average_cost

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity <= 0

    @property
    def is_low_stock(self) -> bool:
        return self.minimum_threshold > 0 and self.quantity <= self.minimum_threshold

    @property
    def stock_status(self) -> str:
        if self.is_out_of_stock:
            return 'out_of_stock'
        if self.is_low_stock:
            return 'low_stock'
        return 'in_stock'

    def __str__(self) -> str:
        return f"produto {self.product_id} @ loja {self.store_id}: {self.quantity}"
