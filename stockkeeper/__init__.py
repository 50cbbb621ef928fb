"""
Django Stockkeeper — Motor de Ajustes, Devoluções e Conciliação de Estoque.

Uso:
    from stockkeeper import reconciliation, StockkeeperError

    reconciliation.approve('adjustment', adj.pk, actor_id=manager.pk)
    reconciliation.current_stock(product_id, store_id).quantity
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'reconciliation':
        from stockkeeper.service import Reconciliation
        return Reconciliation
    elif name == 'StockkeeperError':
        from stockkeeper.exceptions import StockkeeperError
        return StockkeeperError
    elif name == 'StockPosition':
        from stockkeeper.models.position import StockPosition
        return StockPosition
    elif name == 'StockMovement':
        from stockkeeper.models.movement import StockMovement
        return StockMovement
    elif name == 'StockAdjustment':
        from stockkeeper.models.adjustment import StockAdjustment
        return StockAdjustment
    elif name == 'SalesReturn':
        from stockkeeper.models.returns import SalesReturn
        return SalesReturn
    elif name == 'SalesLine':
        from stockkeeper.models.sales import SalesLine
        return SalesLine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'reconciliation',
    'StockkeeperError',
    'StockPosition',
    'StockMovement',
    'StockAdjustment',
    'SalesReturn',
    'SalesLine',
]

__version__ = '0.1.0'
