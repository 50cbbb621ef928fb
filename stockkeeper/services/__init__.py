"""
Stockkeeper services — one module per concern.

    from stockkeeper.services import StockLedger, AdjustmentWorkflow, ReturnWorkflow
"""

from stockkeeper.services.adjustments import AdjustmentWorkflow
from stockkeeper.services.eligibility import ReturnEligibilityTracker
from stockkeeper.services.ledger import StockLedger
from stockkeeper.services.returns import ReturnWorkflow
from stockkeeper.services.sales import SalesPosting

__all__ = [
    'StockLedger',
    'AdjustmentWorkflow',
    'ReturnEligibilityTracker',
    'ReturnWorkflow',
    'SalesPosting',
]
