"""
Permission checker loader.

Usage:
    from stockkeeper.adapters import get_permission_checker

    checker = get_permission_checker()
    checker.allowed(user.pk, "stock-adjustment.approve")

Settings:
    STOCKKEEPER = {
        "PERMISSION_CHECKER": "backoffice.permissions.RolePermissionChecker",
    }

If PERMISSION_CHECKER is not configured, the allow-all adapter is used.
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockkeeper.adapters.noop import AllowAllPermissionChecker
from stockkeeper.conf import stockkeeper_settings
from stockkeeper.protocols.permissions import PermissionChecker

logger = logging.getLogger(__name__)


# Cached checker instance
_lock = threading.Lock()
_permission_checker: PermissionChecker | None = None


def get_permission_checker() -> PermissionChecker:
    """
    Return the configured permission checker.

    Raises:
        ImproperlyConfigured: If the configured path cannot be imported or
            does not implement PermissionChecker
    """
    global _permission_checker

    if _permission_checker is None:
        with _lock:
            if _permission_checker is None:  # double-checked
                checker_path = stockkeeper_settings.PERMISSION_CHECKER

                if not checker_path:
                    _permission_checker = AllowAllPermissionChecker()
                    return _permission_checker

                try:
                    checker = import_string(checker_path)()
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import permission checker '{checker_path}': {e}"
                    ) from e

                if not isinstance(checker, PermissionChecker):
                    raise ImproperlyConfigured(
                        f"'{checker_path}' does not implement PermissionChecker"
                    )

                _permission_checker = checker
                logger.debug("Loaded permission checker: %s", checker_path)

    return _permission_checker


def reset_permission_checker() -> None:
    """Reset the cached checker. Useful for testing."""
    global _permission_checker
    _permission_checker = None
