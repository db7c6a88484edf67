from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z

SALE_ACTIVE = "ACTIVE"
SALE_VOIDED = "VOIDED"

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_TRANSFER = "transfer"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_TRANSFER)
DIGITAL_PAYMENT_METHODS = (PAYMENT_CARD, PAYMENT_TRANSFER)


class Sale(db.Model):
    """
    Completed sale document.

    A sale is created together with its lines in one transaction and can
    only move from ACTIVE to VOIDED. Voided sales stay in the table so
    historical reports remain reproducible.

    INVARIANTS:
    - total_cents == subtotal_cents + tax_cents
    - change_cents == max(0, amount_paid_cents - total_cents)
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        # Composite index for day-window aggregation by status
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "V-000123")
    sale_number = db.Column(db.String(50), nullable=False)

    actor_id = db.Column(db.Integer, nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)

    # Amounts (all in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    # ACTIVE or VOIDED
    status = db.Column(db.String(16), nullable=False, default=SALE_ACTIVE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Void audit trail
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_actor_id = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "actor_id": self.actor_id,
            "client_id": self.client_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "amount_paid_cents": self.amount_paid_cents,
            "change_cents": self.change_cents,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_actor_id": self.voided_by_actor_id,
            "version_id": self.version_id,
        }


class SaleLine(db.Model):
    """
    One product's quantity and price within a sale.

    Barcode, description and unit cost are copied from the product when the
    sale is created and never re-read from the catalog afterwards.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Snapshot at time of sale
    product_barcode = db.Column(db.String(64), nullable=True)
    product_description = db.Column(db.Text, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, order_by="SaleLine.id"),
    )

    @property
    def profit_cents(self) -> int:
        return (self.unit_price_cents - self.unit_cost_cents) * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_barcode": self.product_barcode,
            "product_description": self.product_description,
            "unit_cost_cents": self.unit_cost_cents,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "profit_cents": self.profit_cents,
            "created_at": to_utc_z(self.created_at),
        }
