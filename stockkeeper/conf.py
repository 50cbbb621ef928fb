"""
Stockkeeper configuration.

Usage in settings.py:
    STOCKKEEPER = {
        "PERMISSION_CHECKER": "backoffice.permissions.RolePermissionChecker",
        "RETURN_WINDOW_DAYS": 30,
        "ADJUSTMENT_NUMBER_PREFIX": "ADJ",
        "RETURN_NUMBER_PREFIX": "RTN",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class StockkeeperSettings:
    """Stockkeeper configuration settings."""

    # Permission gate consulted by the façade (dotted path, empty = allow all)
    PERMISSION_CHECKER: str = ""

    # Days after the sale during which returns are accepted (0 = no limit)
    RETURN_WINDOW_DAYS: int = 30

    # Document number prefixes
    ADJUSTMENT_NUMBER_PREFIX: str = "ADJ"
    RETURN_NUMBER_PREFIX: str = "RTN"

    # Precision kept for weighted average cost
    COST_DECIMAL_PLACES: int = 4


def get_stockkeeper_settings() -> StockkeeperSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKKEEPER", {})
    return StockkeeperSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockkeeperSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockkeeper_settings(), name)


stockkeeper_settings = _LazySettings()
