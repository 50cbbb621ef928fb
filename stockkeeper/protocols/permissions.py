"""
Permission Protocol — Interface for the authorization gate.

Stockkeeper defines this protocol; the host application (roles, groups,
an external policy service) implements it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

# Keys consulted by the façade, one per guarded operation.
ADJUSTMENT_CREATE = "stock-adjustment.create"
ADJUSTMENT_EDIT = "stock-adjustment.edit"
ADJUSTMENT_DELETE = "stock-adjustment.delete"
ADJUSTMENT_APPROVE = "stock-adjustment.approve"
ADJUSTMENT_REJECT = "stock-adjustment.reject"
RETURN_CREATE = "sales.create"
RETURN_EDIT = "sales.edit"
RETURN_DELETE = "sales.delete"
RETURN_APPROVE = "return.approve"
RETURN_REJECT = "return.reject"


@runtime_checkable
class PermissionChecker(Protocol):
    """
    Protocol for permission checks.

    Implementations answer a single question: may this actor perform the
    action named by permission_key?
    """

    def allowed(self, actor_id: int, permission_key: str) -> bool:
        """
        Check a permission.

        Args:
            actor_id: User performing the operation
            permission_key: e.g. "stock-adjustment.approve"

        Returns:
            True when the actor may proceed
        """
        ...
