"""
StockMovement model — Immutable ledger of quantity changes.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockkeeper.models.enums import MovementKind


class StockMovement(models.Model):
    """
    Immutable record of a quantity change and its cause.

    Rules:
    - NEVER update() or delete()
    - Corrections are new movements, posted through a workflow
    - quantity_after - quantity_before == delta, always

    Σ delta for a position equals its cached quantity.
    """

    position = models.ForeignKey(
        'stockkeeper.StockPosition',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Posição'),
    )

    delta = models.IntegerField(
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    quantity_before = models.IntegerField(verbose_name=_('Quantidade Anterior'))
    quantity_after = models.IntegerField(verbose_name=_('Quantidade Posterior'))
    unit_cost = models.DecimalField(
        max_digits=15,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_('Custo Unitário'),
    )

    kind = models.CharField(
        max_length=30,
        choices=MovementKind.choices,
        verbose_name=_('Tipo'),
    )

    # Document that caused the movement (adjustment, return, sales line)
    reference_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Tipo de Referência'),
    )
    reference_id = models.PositiveBigIntegerField(null=True, blank=True, verbose_name=_('ID da Referência'))
    reference = GenericForeignKey('reference_type', 'reference_id')

    note = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observação'))

    occurred_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['occurred_at', 'pk']
        indexes = [
            models.Index(fields=['position', 'occurred_at'], name='stk_mov_pos_time_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='stk_mov_ref_idx'),
        ]

    @property
    def product_id(self) -> int:
        return self.position.product_id

    @property
    def store_id(self) -> int:
        return self.position.store_id

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, lance um novo ajuste."
            )

        if self.delta == 0:
            raise ValueError("Movimento sem variação")

        if self.quantity_after - self.quantity_before != self.delta:
            raise ValueError("Quantidades anterior/posterior inconsistentes com a variação")

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, lance um novo ajuste."
        )

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} | {self.get_kind_display()}"
