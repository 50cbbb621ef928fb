"""
Allow-all Permission Checker — default adapter.

Used when STOCKKEEPER['PERMISSION_CHECKER'] is not configured: callers are
assumed to be pre-authorized by the host application (view decorators,
DRF permissions, ...).

Usage in settings.py:
    STOCKKEEPER = {
        "PERMISSION_CHECKER": "stockkeeper.adapters.noop.AllowAllPermissionChecker",
    }
"""

from __future__ import annotations


class AllowAllPermissionChecker:
    """Every actor may do everything."""

    def allowed(self, actor_id: int, permission_key: str) -> bool:
        return True
