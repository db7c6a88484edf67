# Overview: Flask CLI command groups for bootstrap, demo data and day-end inspection.

# backend/poscore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "poscore:create_app" (PowerShell: $env:FLASK_APP="poscore:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (development shortcut for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Insert a handful of demo products (idempotent by barcode).
#
# Cash drawer:
# - python -m flask cash summary [--date 2026-01-31]
#   Print the live daily summary (defaults to today).
# - python -m flask cash closures --limit 10
#   List recent closures, most recent first.
#
# Inventory:
# - python -m flask inventory low-stock
#   List active products at or below their minimum stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import inventory_service, reconciliation_service
from .time_utils import parse_business_date


DEMO_PRODUCTS = [
    {"barcode": "7501000000011", "description": "Coffee beans 500g", "purchase_price_cents": 6500, "sale_price_cents": 9900, "stock": 20, "min_stock": 5},
    {"barcode": "7501000000028", "description": "Whole milk 1L", "purchase_price_cents": 1800, "sale_price_cents": 2600, "stock": 40, "min_stock": 10},
    {"barcode": "7501000000035", "description": "Sugar 1kg", "purchase_price_cents": 2200, "sale_price_cents": 3100, "stock": 4, "min_stock": 5},
    {"barcode": None, "description": "Paper bag", "purchase_price_cents": 50, "sale_price_cents": 100, "stock": 200, "min_stock": 50},
]


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (no-op for tables that already exist)."""
    click.echo("BUILD  Creating tables...")
    db.create_all()
    click.echo("PASS Schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample products.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert demo products (skips barcodes that already exist)."""
    created = 0
    for data in DEMO_PRODUCTS:
        if data["barcode"]:
            exists = db.session.query(Product).filter_by(barcode=data["barcode"]).first()
        else:
            exists = db.session.query(Product).filter_by(description=data["description"]).first()
        if exists:
            continue
        db.session.add(Product(**data))
        created += 1
    db.session.commit()
    click.echo(f"PASS Seeded {created} demo product(s).")


@click.group('cash')
def cash_group():
    """Cash drawer inspection commands."""


@cash_group.command('summary')
@click.option('--date', 'day', default=None, help='Business date (YYYY-MM-DD), defaults to today')
@with_appcontext
def cash_summary(day):
    """Print the live daily summary."""
    try:
        parsed = parse_business_date(day)
    except ValueError:
        raise click.BadParameter("date must be YYYY-MM-DD", param_hint="--date")

    summary = reconciliation_service.compute_daily_summary(parsed)
    click.echo(f"\nDaily summary for {summary.business_date.isoformat()}")
    click.echo("=" * 40)
    click.echo(f"{'Cash sales':<20}{_money(summary.sales_cash_cents):>20}")
    click.echo(f"{'Digital sales':<20}{_money(summary.sales_digital_cents):>20}")
    click.echo(f"{'Manual incomes':<20}{_money(summary.manual_incomes_cents):>20}")
    click.echo(f"{'Manual expenses':<20}{_money(summary.manual_expenses_cents):>20}")
    click.echo("-" * 40)
    click.echo(f"{'Expected cash':<20}{_money(summary.expected_cash_cents):>20}")
    click.echo(f"{'Total sales':<20}{_money(summary.total_sales_day_cents):>20}")


@cash_group.command('closures')
@click.option('--limit', type=int, default=10, show_default=True, help='Number of closures to show')
@with_appcontext
def list_closures(limit):
    """List recent closures, most recent first."""
    closures = reconciliation_service.closure_history(limit)
    if not closures:
        click.echo("No closures recorded.")
        return

    click.echo(f"\n{'ID':<6} {'Date':<12} {'Expected':>12} {'Counted':>12} {'Difference':>12}  Status")
    click.echo("-" * 72)
    for closure in closures:
        click.echo(
            f"{closure.id:<6} {closure.business_date.isoformat():<12} "
            f"{_money(closure.expected_cash_cents):>12} {_money(closure.counted_cash_cents):>12} "
            f"{_money(closure.difference_cents):>12}  {closure.status}"
        )


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock():
    """List active products at or below their minimum stock."""
    products = inventory_service.list_low_stock()
    if not products:
        click.echo("PASS No products below minimum stock.")
        return

    click.echo(f"\n{'ID':<6} {'Barcode':<16} {'Stock':>6} {'Min':>6}  Description")
    click.echo("-" * 72)
    for product in products:
        click.echo(f"{product.id:<6} {(product.barcode or '-'):<16} {product.stock:>6} {product.min_stock:>6}  {product.description}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(cash_group)
    app.cli.add_command(inventory_group)
