"""
Exceptions for Stockkeeper.

Every error is a StockkeeperError with a structured code for programmatic
handling. Subclasses map one-to-one onto the engine's failure modes, so
callers can either catch a specific class or inspect ``code``.
"""

from decimal import Decimal
from typing import Any


class StockkeeperError(Exception):
    """
    Structured exception for inventory operations.

    Usage:
        try:
            reconciliation.approve('adjustment', adj.pk, actor_id=manager.pk)
        except NegativeStockError as e:
            print(f"Only {e.data['available']} on hand")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'ERROR'

    _default_messages = {
        'ERROR': 'Operação de estoque falhou',
        'INVALID_STATE': 'Status inválido para esta operação',
        'ALREADY_POSTED': 'Venda já lançada no estoque',
        'RETURN_WINDOW_CLOSED': 'Transação fora do período de devolução',
        'NEGATIVE_STOCK': 'Estoque insuficiente',
        'OVER_RETURN': 'Quantidade devolvida excede a quantidade elegível',
        'NO_ELIGIBLE_ITEMS': 'Nenhum item elegível para devolução',
        'DUPLICATE_PENDING_RETURN': 'Já existe devolução pendente para esta transação',
        'IMMUTABLE_STATE': 'Registro finalizado não pode ser alterado',
        'CONCURRENCY_CONFLICT': 'Modificação concorrente detectada',
        'NOT_FOUND': 'Registro não encontrado',
        'PERMISSION_DENIED': 'Permissão negada',
        'INVALID_REQUEST': 'Requisição inválida',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class InvalidStateError(StockkeeperError):
    """Action attempted on an entity that is not in the required state."""

    default_code = 'INVALID_STATE'


class NegativeStockError(StockkeeperError):
    """A movement would drive quantity on hand below zero."""

    default_code = 'NEGATIVE_STOCK'


class OverReturnError(StockkeeperError):
    """Requested return quantity exceeds the line's eligible quantity."""

    default_code = 'OVER_RETURN'


class NoEligibleItemsError(StockkeeperError):
    """Every targeted sales line is already fully returned or reserved."""

    default_code = 'NO_ELIGIBLE_ITEMS'


class DuplicatePendingReturnError(StockkeeperError):
    """The sales transaction already has a pending return."""

    default_code = 'DUPLICATE_PENDING_RETURN'


class ImmutableStateError(StockkeeperError):
    """Edit or delete attempted on an approved or rejected entity."""

    default_code = 'IMMUTABLE_STATE'


class ConcurrencyConflictError(StockkeeperError):
    """Lock or serialization failure; retry the whole operation once."""

    default_code = 'CONCURRENCY_CONFLICT'


class NotFoundError(StockkeeperError):
    default_code = 'NOT_FOUND'


class PermissionDeniedError(StockkeeperError):
    default_code = 'PERMISSION_DENIED'


class InvalidRequestError(StockkeeperError):
    """Malformed input: empty lines, zero quantities, unknown enums, derived fields."""

    default_code = 'INVALID_REQUEST'
