"""
Concurrency helpers — translate lock failures and retry whole operations.

Row locks are taken with select_for_update() inside the services. When the
database gives up on a lock (deadlock, serialization failure, lock timeout,
"database is locked") Django raises OperationalError; callers see
ConcurrencyConflictError instead and may retry the entire operation once.
"""

import logging
import time
from contextlib import contextmanager

from django.db import IntegrityError, OperationalError

from stockkeeper.exceptions import ConcurrencyConflictError

logger = logging.getLogger('stockkeeper')


@contextmanager
def conflict_guard(operation: str):
    """
    Map database lock failures to ConcurrencyConflictError.

    Must wrap the outermost transaction.atomic() block, so the rollback has
    already happened when the error surfaces.
    """
    try:
        yield
    except OperationalError as exc:
        logger.warning(
            "concurrency.conflict",
            extra={"operation": operation, "error": str(exc)},
        )
        raise ConcurrencyConflictError(operation=operation, detail=str(exc)) from exc


@contextmanager
def unique_insert(operation: str):
    """
    Treat a unique-key collision (two workers allocating the same document
    number) as a concurrency conflict rather than a bug.
    """
    try:
        yield
    except IntegrityError as exc:
        raise ConcurrencyConflictError(operation=operation, detail=str(exc)) from exc


def run_with_retry(func, *, attempts: int = 2, backoff_base: float = 0.05):
    """
    Execute an operation, retrying on ConcurrencyConflictError.

    Only meaningful outside any enclosing transaction: each attempt must
    start from a clean, rolled-back state.
    """
    for attempt in range(attempts):
        try:
            return func()
        except ConcurrencyConflictError:
            if attempt >= attempts - 1:
                raise
            logger.info(
                "concurrency.retry",
                extra={"attempt": attempt + 1, "attempts": attempts},
            )
            time.sleep(backoff_base * (2 ** attempt))
