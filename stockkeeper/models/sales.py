"""
SalesLine model — a posted sale line, read-only fact for returns.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class SalesLine(models.Model):
    """
    One line of a posted sales transaction.

    Written once by SalesPosting when the sale commits, never changed after.
    unit_price_net is the post-discount price; refunds are computed from it.
    """

    sales_transaction_id = models.PositiveBigIntegerField(
        db_index=True,
        verbose_name=_('ID da Transação'),
    )
    store_id = models.PositiveBigIntegerField(verbose_name=_('ID da Loja'))
    line_number = models.PositiveIntegerField(
        verbose_name=_('Nº do Item'),
        help_text=_('Sequência dentro da transação, a partir de 1.'),
    )
    product_id = models.PositiveBigIntegerField(verbose_name=_('ID do Produto'))
    quantity_sold = models.PositiveIntegerField(verbose_name=_('Quantidade Vendida'))
    unit_price_net = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Preço Unitário Líquido'),
    )
    posted_at = models.DateTimeField(default=timezone.now, verbose_name=_('Lançado em'))

    class Meta:
        verbose_name = _('Item de Venda')
        verbose_name_plural = _('Itens de Venda')
        ordering = ['pk']
        constraints = [
            # Line 1 exists once per transaction, so a transaction posts once
            models.UniqueConstraint(
                fields=['sales_transaction_id', 'line_number'],
                name='unique_sales_line_number',
            )
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Itens de venda lançados são imutáveis.")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"venda {self.sales_transaction_id} · produto {self.product_id} × {self.quantity_sold}"
