"""
CLI command tests (flask system / cash / inventory groups).
"""

from conftest import CASHIER_ID
from poscore.models import Product
from poscore.services import cash_service, reconciliation_service


class TestCliCommands:

    def test_seed_demo_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "seed-demo"])
        second = runner.invoke(args=["system", "seed-demo"])

        assert first.exit_code == 0
        assert "Seeded 4" in first.output
        assert "Seeded 0" in second.output
        db_session.expire_all()
        assert db_session.query(Product).count() == 4

    def test_low_stock_lists_short_products(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "seed-demo"])

        result = runner.invoke(args=["inventory", "low-stock"])

        assert result.exit_code == 0
        assert "Sugar 1kg" in result.output
        assert "Coffee beans" not in result.output

    def test_cash_summary(self, app, db_session):
        cash_service.record_movement(CASHIER_ID, "income", 12345, "Float")
        runner = app.test_cli_runner()

        result = runner.invoke(args=["cash", "summary"])

        assert result.exit_code == 0
        assert "123.45" in result.output

    def test_cash_summary_bad_date(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["cash", "summary", "--date", "yesterday"])
        assert result.exit_code != 0

    def test_cash_closures(self, app, db_session):
        runner = app.test_cli_runner()
        assert "No closures recorded." in runner.invoke(args=["cash", "closures"]).output

        reconciliation_service.create_closure(CASHIER_ID, counted_cash_cents=500)
        result = runner.invoke(args=["cash", "closures", "--limit", "5"])

        assert result.exit_code == 0
        assert "SURPLUS" in result.output
