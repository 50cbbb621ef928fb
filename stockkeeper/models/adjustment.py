"""
StockAdjustment model — manual stock correction awaiting approval.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockkeeper.models.enums import AdjustmentReason, AdjustmentStatus, AdjustmentType


class StockAdjustment(models.Model):
    """
    Manual correction of stock quantities at one store.

    LIFECYCLE:

        ┌───────┐   approve()   ┌──────────┐
        │ DRAFT │ ────────────► │ APPROVED │
        └───────┘               └──────────┘
            │ reject()
            ▼
        ┌──────────┐
        │ REJECTED │
        └──────────┘

    Lines are editable only while DRAFT. Approval is the only event that
    creates StockMovements, one per line.
    """

    number = models.CharField(
        max_length=30,
        unique=True,
        verbose_name=_('Número'),
    )
    store_id = models.PositiveBigIntegerField(
        db_index=True,
        verbose_name=_('ID da Loja'),
    )
    type = models.CharField(
        max_length=20,
        choices=AdjustmentType.choices,
        verbose_name=_('Tipo'),
    )
    reason = models.CharField(
        max_length=30,
        choices=AdjustmentReason.choices,
        verbose_name=_('Motivo'),
    )
    adjustment_date = models.DateField(
        default=timezone.localdate,
        verbose_name=_('Data do Ajuste'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    status = models.CharField(
        max_length=20,
        choices=AdjustmentStatus.choices,
        default=AdjustmentStatus.DRAFT,
        db_index=True,
        verbose_name=_('Status'),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Criado por'),
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Aprovado por'),
    )
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Aprovado em'))

    # Server-computed projection (Σ line value impact)
    total_value_impact = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Impacto em Valor'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Ajuste de Estoque')
        verbose_name_plural = _('Ajustes de Estoque')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store_id', 'adjustment_date'], name='stk_adj_store_date_idx'),
        ]

    @property
    def is_draft(self) -> bool:
        return self.status == AdjustmentStatus.DRAFT

    def recalculate_total_value_impact(self) -> Decimal:
        total = sum((line.value_impact for line in self.lines.all()), Decimal('0'))
        self.total_value_impact = total
        self.save(update_fields=['total_value_impact', 'updated_at'])
        return total

    def __str__(self) -> str:
        return f"{self.number} ({self.get_status_display()})"


class AdjustmentLine(models.Model):
    """One product's correction inside an adjustment."""

    adjustment = models.ForeignKey(
        StockAdjustment,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Ajuste'),
    )
    product_id = models.PositiveBigIntegerField(verbose_name=_('ID do Produto'))

    # Signed: positive for increase, negative for decrease
    adjusted_quantity = models.IntegerField(verbose_name=_('Quantidade Ajustada'))

    # Snapshots taken when the line is written
    current_quantity_snapshot = models.PositiveIntegerField(verbose_name=_('Quantidade no Momento'))
    unit_cost_snapshot = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Custo Unitário'),
    )

    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    class Meta:
        verbose_name = _('Item de Ajuste')
        verbose_name_plural = _('Itens de Ajuste')
        ordering = ['pk']
        indexes = [
            models.Index(fields=['adjustment', 'product_id'], name='stk_adjline_prod_idx'),
        ]

    @property
    def new_quantity(self) -> int:
        """Projection from the snapshot; approval re-reads the live quantity."""
        return self.current_quantity_snapshot + self.adjusted_quantity

    @property
    def value_impact(self) -> Decimal:
        return self.adjusted_quantity * self.unit_cost_snapshot

    def __str__(self) -> str:
        signal = '+' if self.adjusted_quantity > 0 else ''
        return f"produto {self.product_id}: {signal}{self.adjusted_quantity}"
