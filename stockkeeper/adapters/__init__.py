"""
Stockkeeper Adapters.

Implementations of protocols for external systems.
"""

from stockkeeper.adapters.noop import AllowAllPermissionChecker
from stockkeeper.adapters.permissions import (
    get_permission_checker,
    reset_permission_checker,
)

__all__ = [
    "AllowAllPermissionChecker",
    "get_permission_checker",
    "reset_permission_checker",
]
