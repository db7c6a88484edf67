"""
Manual cash movement tests.
"""

from datetime import timedelta

import pytest
from conftest import CASHIER_ID, failing, shift_to_previous_day
from poscore.models import CashMovement, LedgerEvent
from poscore.services import cash_service
from poscore.services.cash_service import MovementNotFound
from poscore.services.concurrency import ConcurrencyConflict
from poscore.time_utils import business_today
from poscore.validation import ValidationError


class TestRecordMovement:

    def test_record_income(self, db_session):
        movement = cash_service.record_movement(
            actor_id=CASHIER_ID,
            movement_type="income",
            amount_cents=50000,
            description="capital injection",
        )

        assert movement.id is not None
        assert movement.type == "income"
        assert movement.amount_cents == 50000
        assert cash_service.sum_by_type(business_today(), "income") == 50000

    def test_type_is_normalized(self, db_session):
        movement = cash_service.record_movement(CASHIER_ID, " Expense ", 1200, "Cleaning supplies")
        assert movement.type == "expense"

    @pytest.mark.parametrize("amount", [0, -100, 10.5, None, "1e3"])
    def test_amount_must_be_positive_integer(self, db_session, amount):
        with pytest.raises(ValidationError):
            cash_service.record_movement(CASHIER_ID, "expense", amount, "Bad amount")

        assert db_session.query(CashMovement).count() == 0

    @pytest.mark.parametrize("movement_type", [None, "", "refund", "withdrawal"])
    def test_unknown_type(self, db_session, movement_type):
        with pytest.raises(ValidationError):
            cash_service.record_movement(CASHIER_ID, movement_type, 100, "Odd type")

    @pytest.mark.parametrize("description", [None, "", "   "])
    def test_description_required(self, db_session, description):
        with pytest.raises(ValidationError):
            cash_service.record_movement(CASHIER_ID, "income", 100, description)

    def test_actor_required(self, db_session):
        with pytest.raises(ValidationError):
            cash_service.record_movement(None, "income", 100, "No actor")

    def test_ledger_event_written(self, db_session):
        movement = cash_service.record_movement(CASHIER_ID, "income", 100, "Float")

        event = db_session.query(LedgerEvent).filter_by(entity_type="cash_movement").one()
        assert event.entity_id == movement.id
        assert event.event_type == "cash.movement_recorded"


class TestDeleteMovement:

    def test_delete_removes_movement(self, db_session):
        movement = cash_service.record_movement(CASHIER_ID, "expense", 700, "Taxi")
        movement_id = movement.id

        cash_service.delete_movement(movement_id, actor_id=CASHIER_ID)

        assert db_session.get(CashMovement, movement_id) is None
        assert cash_service.sum_by_type(business_today(), "expense") == 0
        deleted = db_session.query(LedgerEvent).filter_by(event_type="cash.movement_deleted").one()
        assert deleted.entity_id == movement_id

    def test_delete_unknown(self, db_session):
        with pytest.raises(MovementNotFound):
            cash_service.delete_movement(424242, actor_id=CASHIER_ID)

    def test_delete_requires_actor(self, db_session):
        movement = cash_service.record_movement(CASHIER_ID, "expense", 700, "Taxi")

        with pytest.raises(ValidationError):
            cash_service.delete_movement(movement.id, actor_id=None)

        assert db_session.get(CashMovement, movement.id) is not None


class TestMovementQueries:

    def test_list_for_date_is_day_scoped_and_ordered(self, db_session):
        old = cash_service.record_movement(CASHIER_ID, "income", 100, "Yesterday")
        shift_to_previous_day(old)
        first = cash_service.record_movement(CASHIER_ID, "income", 200, "First")
        second = cash_service.record_movement(CASHIER_ID, "expense", 50, "Second")

        today = business_today()
        assert [m.id for m in cash_service.list_for_date(today)] == [first.id, second.id]
        assert [m.id for m in cash_service.list_for_date(today - timedelta(days=1))] == [old.id]

    def test_sum_by_type(self, db_session):
        cash_service.record_movement(CASHIER_ID, "income", 300, "A")
        cash_service.record_movement(CASHIER_ID, "income", 200, "B")
        cash_service.record_movement(CASHIER_ID, "expense", 75, "C")

        today = business_today()
        assert cash_service.sum_by_type(today, "income") == 500
        assert cash_service.sum_by_type(today, "expense") == 75

    def test_sum_by_type_empty_day(self, db_session):
        assert cash_service.sum_by_type(business_today(), "income") == 0


class TestMovementLockContention:

    def test_record_retries_transient_lock_error(self, db_session, no_backoff, monkeypatch):
        ledger = failing(times=1, then=cash_service.append_ledger_event)
        monkeypatch.setattr(cash_service, "append_ledger_event", ledger)

        movement = cash_service.record_movement(CASHIER_ID, "income", 2500, "Float")

        assert ledger.calls["n"] == 2
        assert db_session.query(CashMovement).count() == 1
        assert cash_service.sum_by_type(business_today(), "income") == 2500
        assert movement.amount_cents == 2500

    def test_record_conflict_writes_nothing(self, db_session, no_backoff, monkeypatch):
        monkeypatch.setattr(cash_service, "append_ledger_event", failing())

        with pytest.raises(ConcurrencyConflict):
            cash_service.record_movement(CASHIER_ID, "expense", 900, "Courier")

        assert db_session.query(CashMovement).count() == 0

    def test_delete_conflict_keeps_movement(self, db_session, no_backoff, monkeypatch):
        movement_id = cash_service.record_movement(CASHIER_ID, "expense", 900, "Courier").id
        monkeypatch.setattr(cash_service, "append_ledger_event", failing())

        with pytest.raises(ConcurrencyConflict):
            cash_service.delete_movement(movement_id, actor_id=CASHIER_ID)

        assert db_session.get(CashMovement, movement_id) is not None
        assert cash_service.sum_by_type(business_today(), "expense") == 900
