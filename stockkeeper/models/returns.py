"""
SalesReturn model — customer return awaiting approval.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockkeeper.models.enums import ItemCondition, ReturnStatus


class SalesReturn(models.Model):
    """
    Customer return against one sales transaction.

    LIFECYCLE:

        ┌─────────┐   approve()   ┌──────────┐
        │ PENDING │ ────────────► │ APPROVED │
        └─────────┘               └──────────┘
            │ reject()
            ▼
        ┌──────────┐
        │ REJECTED │
        └──────────┘

    A PENDING or APPROVED return reserves its line quantities against the
    sold quantity. REJECTED releases them.
    """

    number = models.CharField(
        max_length=30,
        unique=True,
        verbose_name=_('Número'),
    )
    sales_transaction_id = models.PositiveBigIntegerField(
        verbose_name=_('ID da Transação'),
    )
    store_id = models.PositiveBigIntegerField(verbose_name=_('ID da Loja'))
    return_date = models.DateField(
        default=timezone.localdate,
        verbose_name=_('Data da Devolução'),
    )
    reason = models.TextField(verbose_name=_('Motivo'))

    status = models.CharField(
        max_length=20,
        choices=ReturnStatus.choices,
        default=ReturnStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    refund_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Valor do Reembolso'),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Criado por'),
    )
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Processado por'),
    )
    processed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Processado em'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Devolução')
        verbose_name_plural = _('Devoluções')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['sales_transaction_id', 'status'], name='stk_ret_txn_status_idx'),
            models.Index(fields=['status', 'return_date'], name='stk_ret_status_date_idx'),
        ]

    @property
    def is_pending(self) -> bool:
        return self.status == ReturnStatus.PENDING

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines.all())

    def __str__(self) -> str:
        return f"{self.number} ({self.get_status_display()})"


class ReturnLine(models.Model):
    """Quantity of one sales line being returned, with its condition."""

    sales_return = models.ForeignKey(
        SalesReturn,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Devolução'),
    )
    sales_line = models.ForeignKey(
        'stockkeeper.SalesLine',
        on_delete=models.PROTECT,
        related_name='return_lines',
        verbose_name=_('Item de Venda'),
    )
    product_id = models.PositiveBigIntegerField(verbose_name=_('ID do Produto'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade'))
    condition = models.CharField(
        max_length=20,
        choices=ItemCondition.choices,
        default=ItemCondition.GOOD,
        verbose_name=_('Condição'),
    )
    unit_price_net = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name=_('Preço Unitário Líquido'),
    )
    refund_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name=_('Reembolso'),
    )
    reason = models.TextField(blank=True, default='', verbose_name=_('Motivo'))

    class Meta:
        verbose_name = _('Item de Devolução')
        verbose_name_plural = _('Itens de Devolução')
        ordering = ['pk']
        indexes = [
            models.Index(fields=['sales_return', 'product_id'], name='stk_retline_prod_idx'),
        ]

    @property
    def restocks(self) -> bool:
        """Only items in good condition go back on the shelf."""
        return self.condition == ItemCondition.GOOD

    def __str__(self) -> str:
        return f"{self.quantity}× item {self.sales_line_id} ({self.get_condition_display()})"
