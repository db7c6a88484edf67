from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z

MOVEMENT_INCOME = "income"
MOVEMENT_EXPENSE = "expense"
MOVEMENT_TYPES = (MOVEMENT_INCOME, MOVEMENT_EXPENSE)


class CashMovement(db.Model):
    """
    Manual, non-sale cash inflow or outflow (owner withdrawal, petty expense).

    Rows are never updated. A mistaken entry is deleted outright; the
    deletion is still traceable through the audit ledger.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount_positive"),
        db.Index("ix_cash_movements_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)  # income, expense
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    actor_id = db.Column(db.Integer, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "actor_id": self.actor_id,
            "created_at": to_utc_z(self.created_at),
        }


class CashClosure(db.Model):
    """
    End-of-day drawer reconciliation ("arqueo").

    IMMUTABLE SNAPSHOT: every amount is copied from the daily summary at the
    moment of closing. Later voids or movement deletions on the same day do
    not change a stored closure; the live figures come from
    reconciliation_service.compute_daily_summary instead.
    """
    __tablename__ = "cash_closures"
    __table_args__ = (
        db.Index("ix_cash_closures_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, nullable=False, index=True)

    # Calendar day (business timezone) the snapshot describes
    business_date = db.Column(db.Date, nullable=False, index=True)

    # Frozen summary (all amounts in cents)
    sales_cash_cents = db.Column(db.Integer, nullable=False)
    sales_digital_cents = db.Column(db.Integer, nullable=False)
    manual_incomes_cents = db.Column(db.Integer, nullable=False)
    manual_expenses_cents = db.Column(db.Integer, nullable=False)
    expected_cash_cents = db.Column(db.Integer, nullable=False)
    counted_cash_cents = db.Column(db.Integer, nullable=False)
    difference_cents = db.Column(db.Integer, nullable=False)  # counted - expected

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def status(self) -> str:
        if self.difference_cents < 0:
            return "SHORTFALL"
        if self.difference_cents > 0:
            return "SURPLUS"
        return "BALANCED"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "business_date": self.business_date.isoformat(),
            "sales_cash_cents": self.sales_cash_cents,
            "sales_digital_cents": self.sales_digital_cents,
            "manual_incomes_cents": self.manual_incomes_cents,
            "manual_expenses_cents": self.manual_expenses_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "counted_cash_cents": self.counted_cash_cents,
            "difference_cents": self.difference_cents,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
