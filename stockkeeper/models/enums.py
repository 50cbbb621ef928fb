"""
Enums for Stockkeeper models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementKind(models.TextChoices):
    """Cause of a ledger movement."""
    SALE = 'sale', _('Venda')
    ADJUSTMENT_INCREASE = 'adjustment_increase', _('Ajuste (entrada)')
    ADJUSTMENT_DECREASE = 'adjustment_decrease', _('Ajuste (saída)')
    RETURN_RESTOCK = 'return_restock', _('Devolução (reestoque)')


class AdjustmentType(models.TextChoices):
    INCREASE = 'increase', _('Entrada')
    DECREASE = 'decrease', _('Saída')


class AdjustmentReason(models.TextChoices):
    STOCK_OPNAME = 'stock_opname', _('Inventário físico')
    DAMAGED_GOODS = 'damaged_goods', _('Avaria')
    EXPIRED_GOODS = 'expired_goods', _('Vencimento')
    LOST_GOODS = 'lost_goods', _('Extravio')
    FOUND_GOODS = 'found_goods', _('Mercadoria encontrada')
    CORRECTION = 'correction', _('Correção')
    SUPPLIER_RETURN = 'supplier_return', _('Devolução ao fornecedor')
    CUSTOMER_RETURN = 'customer_return', _('Devolução de cliente')
    OTHER = 'other', _('Outro')


class AdjustmentStatus(models.TextChoices):
    """
    Adjustment lifecycle.

    DRAFT → APPROVED | REJECTED. Only DRAFT is editable; the other two are final.
    """
    DRAFT = 'draft', _('Rascunho')
    APPROVED = 'approved', _('Aprovado')
    REJECTED = 'rejected', _('Rejeitado')


class ReturnStatus(models.TextChoices):
    """
    Return lifecycle.

    PENDING → APPROVED | REJECTED. PENDING and APPROVED reserve eligibility.
    """
    PENDING = 'pending', _('Pendente')
    APPROVED = 'approved', _('Aprovado')
    REJECTED = 'rejected', _('Rejeitado')


class ItemCondition(models.TextChoices):
    """Condition of a returned item. Only GOOD goes back to stock."""
    GOOD = 'good', _('Bom estado')
    DAMAGED = 'damaged', _('Danificado')
    DEFECTIVE = 'defective', _('Defeituoso')


class RequestKind(models.TextChoices):
    """Kinds of proposals the façade can approve or reject."""
    ADJUSTMENT = 'adjustment', _('Ajuste')
    RETURN = 'return', _('Devolução')


ACTIVE_RETURN_STATUSES = [ReturnStatus.PENDING, ReturnStatus.APPROVED]
