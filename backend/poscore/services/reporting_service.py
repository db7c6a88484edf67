# Overview: Service-layer operations for reporting; read-only aggregates over sales history.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func

from poscore.extensions import db
from poscore.models import Sale, SaleLine
from poscore.models.sales import SALE_ACTIVE
from poscore.services.inventory_service import low_stock_query
from poscore.time_utils import business_date_of, business_today, day_bounds

DEFAULT_RANGE_DAYS = 30
TOP_PRODUCTS_LIMIT = 5


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _resolve_range(start: date | None, end: date | None) -> tuple[date, date]:
    end = end or business_today()
    start = start or (end - timedelta(days=DEFAULT_RANGE_DAYS))
    if start > end:
        raise ReportError("start must be on or before end")
    return start, end


def sales_report(*, start: date | None = None, end: date | None = None) -> dict:
    """
    Sales, cost and profit over an inclusive range of business days.

    Profit is net of tax (subtotal - cost). Cost uses the unit cost
    snapshotted on each sale line, so catalog price edits never rewrite
    past profit. Voided sales are excluded.
    """
    start, end = _resolve_range(start, end)
    window_start, _ = day_bounds(start)
    _, window_end = day_bounds(end)

    in_range = (
        Sale.status == SALE_ACTIVE,
        Sale.created_at >= window_start,
        Sale.created_at < window_end,
    )

    totals = db.session.query(
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.total_cents), 0).label("total_sales"),
        func.coalesce(func.sum(Sale.subtotal_cents), 0).label("net_sales"),
    ).filter(*in_range).one()

    total_cost = (
        db.session.query(
            func.coalesce(func.sum(SaleLine.unit_cost_cents * SaleLine.quantity), 0)
        )
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(*in_range)
        .scalar()
    )

    top_rows = (
        db.session.query(
            SaleLine.product_id,
            SaleLine.product_description,
            func.sum(SaleLine.quantity).label("quantity"),
            func.sum(SaleLine.line_total_cents).label("amount"),
        )
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(*in_range)
        .group_by(SaleLine.product_id, SaleLine.product_description)
        .order_by(func.sum(SaleLine.quantity).desc(), SaleLine.product_id.asc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )

    # Bucketed in Python so day boundaries follow the business timezone
    by_day: dict[date, dict] = {}
    for created_at, total_cents in db.session.query(Sale.created_at, Sale.total_cents).filter(*in_range):
        day = business_date_of(created_at)
        bucket = by_day.setdefault(day, {"sales_count": 0, "total_sales_cents": 0})
        bucket["sales_count"] += 1
        bucket["total_sales_cents"] += int(total_cents)

    sales_count = int(totals.sales_count or 0)
    total_sales = int(totals.total_sales or 0)
    net_sales = int(totals.net_sales or 0)
    total_cost = int(total_cost or 0)

    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "sales_count": sales_count,
        "total_sales_cents": total_sales,
        "total_cost_cents": total_cost,
        "net_sales_cents": net_sales,
        "total_profit_cents": net_sales - total_cost,
        "average_ticket_cents": (total_sales // sales_count) if sales_count else 0,
        "low_stock_count": low_stock_query().count(),
        "top_products": [
            {
                "product_id": row.product_id,
                "product_description": row.product_description,
                "quantity": int(row.quantity or 0),
                "amount_cents": int(row.amount or 0),
            }
            for row in top_rows
        ],
        "sales_by_day": [
            {"date": day.isoformat(), **by_day[day]}
            for day in sorted(by_day)
        ],
    }
