# Overview: Transaction helpers shared by the services: row locks and retry on write conflicts.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Lock the selected rows until the surrounding transaction ends.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; version_id_col on the models
    still catches conflicting writers there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run one unit of work as a single transaction.

    Any exception rolls the session back so nothing half-applied is left
    pending. Write conflicts (OperationalError for locks/deadlocks,
    StaleDataError for version mismatches) are retried with exponential
    backoff; everything else propagates on the first failure.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Write conflict (%s), retrying attempt %d/%d", type(exc).__name__, attempt + 2, attempts)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
