# Overview: Service-layer operations for manual cash movements.

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, select

from ..extensions import db
from ..models import CashMovement
from ..models.cash import MOVEMENT_TYPES
from poscore.time_utils import day_bounds, utcnow
from ..validation import NotFoundError, ValidationError, coerce_cents, coerce_text, require_actor_id
from .concurrency import run_with_retry
from .ledger_service import append_ledger_event


class MovementNotFound(NotFoundError):
    def __init__(self, movement_id: int):
        super().__init__(f"Cash movement {movement_id} not found", details={"movement_id": movement_id})


def _normalize_type(movement_type: Any) -> str:
    value = str(movement_type or "").strip().lower()
    if value not in MOVEMENT_TYPES:
        raise ValidationError(
            f"type must be one of: {', '.join(MOVEMENT_TYPES)}",
            details={"type": movement_type},
        )
    return value


def record_movement(actor_id: int, movement_type: str, amount_cents: int, description: str) -> CashMovement:
    """
    Append a manual income or expense.

    Raises:
        ValidationError: missing actor, unknown type, non-positive amount or
            blank description
        ConcurrencyConflict: the write kept losing lock races
    """
    actor = require_actor_id(actor_id)
    kind = _normalize_type(movement_type)
    amount = coerce_cents(amount_cents, "amount_cents", allow_zero=False)
    text = coerce_text(description, "description", max_length=255)

    def _op():
        movement = CashMovement(
            type=kind,
            amount_cents=amount,
            description=text,
            actor_id=actor,
            created_at=utcnow(),
        )
        db.session.add(movement)
        db.session.flush()

        append_ledger_event(
            event_type="cash.movement_recorded",
            event_category="cash",
            entity_type="cash_movement",
            entity_id=movement.id,
            actor_id=actor,
            occurred_at=movement.created_at,
            note=text,
            payload=f"type={kind},amount_cents={amount}",
        )

        db.session.commit()
        return movement

    return run_with_retry(_op)


def delete_movement(movement_id: int, actor_id: int) -> None:
    """Remove a movement. Sales and stock are unaffected."""
    actor = require_actor_id(actor_id)

    def _op():
        movement = db.session.query(CashMovement).filter_by(id=movement_id).first()
        if movement is None:
            raise MovementNotFound(movement_id)

        append_ledger_event(
            event_type="cash.movement_deleted",
            event_category="cash",
            entity_type="cash_movement",
            entity_id=movement.id,
            actor_id=actor,
            occurred_at=utcnow(),
            note=movement.description,
            payload=f"type={movement.type},amount_cents={movement.amount_cents}",
        )

        db.session.delete(movement)
        db.session.commit()

    run_with_retry(_op)


def _day_filter(query, day: date):
    start, end = day_bounds(day)
    return query.filter(CashMovement.created_at >= start, CashMovement.created_at < end)


def list_for_date(day: date) -> list[CashMovement]:
    """Movements of one business day, oldest first."""
    query = _day_filter(db.session.query(CashMovement), day)
    return query.order_by(CashMovement.created_at.asc(), CashMovement.id.asc()).all()


def sum_by_type(day: date, movement_type: str) -> int:
    kind = _normalize_type(movement_type)
    query = _day_filter(
        db.session.query(func.coalesce(func.sum(CashMovement.amount_cents), 0)),
        day,
    ).filter(CashMovement.type == kind)
    return int(query.scalar() or 0)


def sum_by_type_expr(start, end, movement_type: str):
    """Scalar subquery variant used by the reconciliation snapshot read."""
    return (
        select(func.coalesce(func.sum(CashMovement.amount_cents), 0))
        .where(
            CashMovement.type == movement_type,
            CashMovement.created_at >= start,
            CashMovement.created_at < end,
        )
        .scalar_subquery()
    )
