"""
Cash Reconciliation Service

WHY: At day's end the cashier counts the drawer and compares it against
what the system expects. The comparison is stored as a closure so the
result can be audited later, even if the day's data changes afterwards.

DESIGN PRINCIPLES:
- DailySummary is a live, re-computable value; it is never persisted implicitly
- CashClosure is a frozen snapshot copied from a DailySummary
- Voided sales never count towards any figure
- Reconciliation reads never mutate sales, stock or movements
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

from sqlalchemy import func, select

from ..extensions import db
from ..models import CashClosure, Sale
from ..models.cash import MOVEMENT_EXPENSE, MOVEMENT_INCOME
from ..models.sales import DIGITAL_PAYMENT_METHODS, PAYMENT_CASH, SALE_ACTIVE
from poscore.time_utils import business_date_of, business_today, day_bounds, utcnow
from ..validation import NotFoundError, ValidationError, coerce_cents, coerce_int, coerce_text, require_actor_id
from .cash_service import list_for_date, sum_by_type_expr
from .concurrency import run_with_retry
from .ledger_service import append_ledger_event

DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 100


class ClosureNotFound(NotFoundError):
    def __init__(self, closure_id: int):
        super().__init__(f"Cash closure {closure_id} not found", details={"closure_id": closure_id})


@dataclass(frozen=True)
class DailySummary:
    """Live aggregate for one business day (all amounts in cents)."""
    business_date: date
    sales_cash_cents: int
    sales_digital_cents: int
    manual_incomes_cents: int
    manual_expenses_cents: int

    @property
    def expected_cash_cents(self) -> int:
        return self.sales_cash_cents + self.manual_incomes_cents - self.manual_expenses_cents

    @property
    def total_sales_day_cents(self) -> int:
        return self.sales_cash_cents + self.sales_digital_cents

    def to_dict(self) -> dict:
        data = asdict(self)
        data["business_date"] = self.business_date.isoformat()
        data["expected_cash_cents"] = self.expected_cash_cents
        data["total_sales_day_cents"] = self.total_sales_day_cents
        return data


def _sales_total_expr(start, end, methods: tuple[str, ...]):
    return (
        select(func.coalesce(func.sum(Sale.total_cents), 0))
        .where(
            Sale.status == SALE_ACTIVE,
            Sale.payment_method.in_(methods),
            Sale.created_at >= start,
            Sale.created_at < end,
        )
        .scalar_subquery()
    )


def compute_daily_summary(day: date | None = None) -> DailySummary:
    """
    Aggregate sales by payment method and movements by type for one day.

    All four sums come from a single SELECT, so they describe one
    consistent database snapshot even while other terminals are writing.
    """
    day = day or business_today()
    start, end = day_bounds(day)

    stmt = select(
        _sales_total_expr(start, end, (PAYMENT_CASH,)).label("sales_cash"),
        _sales_total_expr(start, end, DIGITAL_PAYMENT_METHODS).label("sales_digital"),
        sum_by_type_expr(start, end, MOVEMENT_INCOME).label("manual_incomes"),
        sum_by_type_expr(start, end, MOVEMENT_EXPENSE).label("manual_expenses"),
    )
    row = db.session.execute(stmt).one()

    return DailySummary(
        business_date=day,
        sales_cash_cents=int(row.sales_cash or 0),
        sales_digital_cents=int(row.sales_digital or 0),
        manual_incomes_cents=int(row.manual_incomes or 0),
        manual_expenses_cents=int(row.manual_expenses or 0),
    )


def create_closure(actor_id: int, counted_cash_cents: int, notes: str | None = None) -> CashClosure:
    """
    Close today's drawer.

    Freezes today's summary together with the counted amount and the
    difference (counted - expected; negative is a shortfall, positive a
    surplus).

    Raises:
        ValidationError: missing actor or negative/non-integer counted cash
        ConcurrencyConflict: the write kept losing lock races
    """
    actor = require_actor_id(actor_id)
    counted = coerce_cents(counted_cash_cents, "counted_cash_cents")
    note_text = coerce_text(notes, "notes", max_length=2000, required=False)

    def _op():
        summary = compute_daily_summary(business_today())

        closure = CashClosure(
            actor_id=actor,
            business_date=summary.business_date,
            sales_cash_cents=summary.sales_cash_cents,
            sales_digital_cents=summary.sales_digital_cents,
            manual_incomes_cents=summary.manual_incomes_cents,
            manual_expenses_cents=summary.manual_expenses_cents,
            expected_cash_cents=summary.expected_cash_cents,
            counted_cash_cents=counted,
            difference_cents=counted - summary.expected_cash_cents,
            notes=note_text,
            created_at=utcnow(),
        )
        db.session.add(closure)
        db.session.flush()

        append_ledger_event(
            event_type="cash.closure_created",
            event_category="cash",
            entity_type="cash_closure",
            entity_id=closure.id,
            actor_id=actor,
            occurred_at=closure.created_at,
            note=f"Closure for {closure.business_date.isoformat()}: {closure.status}",
            payload=(
                f"expected_cash_cents={closure.expected_cash_cents},"
                f"counted_cash_cents={counted},difference_cents={closure.difference_cents}"
            ),
        )

        db.session.commit()
        return closure

    return run_with_retry(_op)


def closure_history(limit: Any = DEFAULT_HISTORY_LIMIT) -> list[CashClosure]:
    """Closures, most recent first. The limit is clamped to 1..100."""
    if limit is None or (isinstance(limit, str) and not limit.strip()):
        limit = DEFAULT_HISTORY_LIMIT
    limit = coerce_int(limit, "limit")
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    limit = min(limit, MAX_HISTORY_LIMIT)

    return (
        db.session.query(CashClosure)
        .order_by(CashClosure.created_at.desc(), CashClosure.id.desc())
        .limit(limit)
        .all()
    )


def get_closure(closure_id: int) -> CashClosure:
    closure = db.session.query(CashClosure).filter_by(id=closure_id).first()
    if closure is None:
        raise ClosureNotFound(closure_id)
    return closure


def closure_detail(closure_id: int) -> dict:
    """
    Stored closure plus the cash movements of its calendar day.

    Movements are read live (they may have been deleted since); the
    closure figures are the frozen snapshot.
    """
    closure = get_closure(closure_id)
    day = closure.business_date or business_date_of(closure.created_at)
    return {
        "closure": closure.to_dict(),
        "movements": [movement.to_dict() for movement in list_for_date(day)],
    }
