# Overview: Service-layer operations for the audit ledger.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import LedgerEvent
from poscore.time_utils import utcnow
"""
Audit Ledger Invariants (authoritative)

- Append-only audit log for sale, cash movement and closure events.
- No domain/business logic in the ledger itself.
- Events are written inside the same DB transaction as the change they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_ledger_event(
    *,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    actor_id: int | None = None,
    sale_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[str] = None,
) -> LedgerEvent:
    """
    Append-only audit event.

    - No domain logic here.
    - No deletes/updates of existing events.
    - Flushes but never commits; the caller owns the transaction.
    """
    ev = LedgerEvent(
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        sale_id=sale_id,
        occurred_at=occurred_at or utcnow(),
        note=note[:255] if note else None,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev

