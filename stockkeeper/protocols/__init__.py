"""
Stockkeeper Protocols.

Defines interfaces for external system integration.
"""

from stockkeeper.protocols.permissions import PermissionChecker

__all__ = [
    "PermissionChecker",
]
