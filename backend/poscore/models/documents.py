from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic document number sequences.

    WHY: Prevent race conditions when generating human-readable sale
    numbers from concurrent terminals.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class LedgerEvent(db.Model):
    """Append-only audit trail of sale, cash and closure events."""
    __tablename__ = "ledger_events"
    __table_args__ = (
        db.Index("ix_ledger_events_category_occurred", "event_category", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # What happened
    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g., sale.created, cash.movement_deleted
    event_category = db.Column(db.String(32), nullable=False, index=True)  # sales, cash

    # What it refers to (generic pointer, may outlive the row it points at)
    entity_type = db.Column(db.String(64), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    actor_id = db.Column(db.Integer, nullable=True, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    # Business vs system time
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Optional structured metadata (keep small; do not denormalize domain state)
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "event_category": self.event_category,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "sale_id": self.sale_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
            "note": self.note,
            "payload": self.payload,
        }
