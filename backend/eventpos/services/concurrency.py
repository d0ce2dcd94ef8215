# Overview: Ledger transaction coordinator; optimistic commit with bounded retry.

"""
Every ledger mutation runs through `run_in_transaction`:

1. The operation body reads every row it will touch, validates, and only
   then writes (the session never autoflushes, so reads cannot leak writes).
2. The coordinator commits. Versioned rows are updated with
   `WHERE version_id = <version read>`; if another writer got there first
   SQLAlchemy raises StaleDataError.
3. Stale versions, uniqueness races and database lock timeouts are
   conflicts: roll back, back off, re-run the whole body against fresh data.
4. Domain errors roll back and propagate unchanged. Nothing is partially
   applied.
"""

from __future__ import annotations

import random
import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransactionConflict, TransactionFailed
from ..extensions import db


CONFLICT_ERRORS = (StaleDataError, OperationalError, IntegrityError, TransactionConflict)
MAX_BACKOFF = 1.0


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute `func` and commit its writes as one atomic unit.

    Conflicts are retried up to `attempts` times (LEDGER_MAX_ATTEMPTS by
    default), then surfaced as TransactionFailed chained from the last one.
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_MAX_ATTEMPTS", 10)
    if backoff_base is None:
        backoff_base = current_app.config.get("LEDGER_RETRY_BACKOFF", 0.02)

    last_exc = None
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except CONFLICT_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            current_app.logger.warning(
                "Ledger transaction conflict (attempt %d/%d): %s",
                attempt + 1,
                attempts,
                type(exc).__name__,
            )
            if attempt < attempts - 1:
                # Full jitter keeps racing writers from retrying in lockstep
                time.sleep(random.uniform(0, min(backoff_base * (2 ** attempt), MAX_BACKOFF)))
        except Exception:
            db.session.rollback()
            raise

    current_app.logger.error("Ledger transaction failed after %d attempts", attempts)
    raise TransactionFailed(
        f"Transaction could not be committed after {attempts} attempts",
        details={"attempts": attempts},
    ) from last_exc
