"""
Stockkeeper Models.

Core models for inventory reconciliation:
- StockPosition: Quantity cache per (product, store)
- StockMovement: Immutable ledger of changes
- StockAdjustment / AdjustmentLine: Manual corrections awaiting approval
- SalesLine: Posted sale lines (read-only facts)
- SalesReturn / ReturnLine: Customer returns awaiting approval
"""

from stockkeeper.models.adjustment import AdjustmentLine, StockAdjustment
from stockkeeper.models.enums import (
    ACTIVE_RETURN_STATUSES,
    AdjustmentReason,
    AdjustmentStatus,
    AdjustmentType,
    ItemCondition,
    MovementKind,
    RequestKind,
    ReturnStatus,
)
from stockkeeper.models.movement import StockMovement
from stockkeeper.models.position import StockPosition
from stockkeeper.models.returns import ReturnLine, SalesReturn
from stockkeeper.models.sales import SalesLine

__all__ = [
    'ACTIVE_RETURN_STATUSES',
    'AdjustmentReason',
    'AdjustmentStatus',
    'AdjustmentType',
    'ItemCondition',
    'MovementKind',
    'RequestKind',
    'ReturnStatus',
    'StockPosition',
    'StockMovement',
    'StockAdjustment',
    'AdjustmentLine',
    'SalesLine',
    'SalesReturn',
    'ReturnLine',
]
