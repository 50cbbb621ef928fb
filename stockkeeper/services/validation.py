"""
Input validation shared by the workflows.

Workflows accept plain dicts (the shape a form or API payload arrives in).
Derived values are always recomputed server-side, so a payload carrying
one is rejected rather than silently ignored.
"""

from decimal import Decimal, InvalidOperation

from stockkeeper.exceptions import InvalidRequestError


def require_actor(actor_id) -> int:
    """Every workflow operation names who performed it."""
    if actor_id is None:
        raise InvalidRequestError(message='Usuário responsável é obrigatório', field='actor_id')
    return require_id(actor_id, 'actor_id')


def require_id(value, field: str) -> int:
    number = to_quantity(value, field)
    if number <= 0:
        raise InvalidRequestError(message=f'{field} inválido', field=field, value=value)
    return number


def to_quantity(value, field: str = 'quantity') -> int:
    """Integer quantity; rejects bools, fractions and garbage."""
    if value is None or value == '':
        raise InvalidRequestError(message=f'{field} é obrigatório', field=field)

    if isinstance(value, bool):
        raise InvalidRequestError(message=f'{field} deve ser inteiro', field=field, value=value)

    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(message=f'{field} deve ser inteiro', field=field, value=value)

    if isinstance(value, (float, Decimal)) and number != value:
        raise InvalidRequestError(message=f'{field} deve ser inteiro', field=field, value=str(value))

    return number


def to_amount(value, field: str) -> Decimal:
    """Non-negative Decimal (costs, prices)."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidRequestError(message=f'{field} inválido', field=field, value=str(value))
    if not amount.is_finite() or amount < 0:
        raise InvalidRequestError(message=f'{field} inválido', field=field, value=str(value))
    return amount


def validate_choice(choices, value, field: str) -> str:
    """Value must be one of a TextChoices enum."""
    if value not in choices.values:
        raise InvalidRequestError(
            message=f'{field} inválido',
            field=field,
            value=value,
            allowed=list(choices.values),
        )
    return choices(value)


def check_line_fields(raw, index: int, allowed: frozenset, derived: frozenset) -> None:
    """Reject derived and unknown keys in one payload line."""
    if not isinstance(raw, dict):
        raise InvalidRequestError(message='Item inválido', line=index)

    sent_derived = derived & raw.keys()
    if sent_derived:
        raise InvalidRequestError(
            message='Campos calculados pelo servidor não são aceitos',
            line=index,
            fields=sorted(sent_derived),
        )

    unknown = raw.keys() - allowed
    if unknown:
        raise InvalidRequestError(
            message='Campos desconhecidos',
            line=index,
            fields=sorted(unknown),
        )
