# Overview: Append-only audit trail written alongside ledger mutations.

from __future__ import annotations

from ..constants import AuditAction
from ..extensions import db
from ..identity import Actor
from ..models import AuditLogEntry
from ..time_utils import utcnow

"""
Audit trail invariants (authoritative)

- Append-only: there is no update, delete or reorder operation.
- Entries are written inside the same DB transaction as the mutation they
  record; if that transaction rolls back, so does the entry.
- Ordering across concurrent writers is only by each entry's timestamp.
"""


def append_entry(actor: Actor, action: AuditAction | str, details: str = "") -> AuditLogEntry:
    """
    Append an audit entry to the current transaction.

    Does not commit; the enclosing ledger transaction does.
    """
    entry = AuditLogEntry(
        timestamp=utcnow(),
        actor_id=actor.id,
        actor_name=actor.name,
        action=AuditAction(action).value,
        details=details or "",
    )
    db.session.add(entry)
    return entry


def list_entries(
    *,
    action: AuditAction | str | None = None,
    actor_id: str | None = None,
    limit: int | None = None,
) -> list[AuditLogEntry]:
    """Audit entries, most recent first."""
    query = db.session.query(AuditLogEntry)
    if action is not None:
        query = query.filter(AuditLogEntry.action == AuditAction(action).value)
    if actor_id is not None:
        query = query.filter(AuditLogEntry.actor_id == actor_id)
    query = query.order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
