from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z

PRODUCT_ACTIVE = "ACTIVE"
PRODUCT_REMOVED = "REMOVED"


class Product(db.Model):
    """
    Product master data.

    The catalog (an external collaborator) owns every column except
    ``stock``; the inventory service is the only writer of ``stock``.

    BARCODE: unique among ACTIVE products only, so a removed product's
    barcode can be reassigned without rewriting history.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index(
            "uq_products_active_barcode",
            "barcode",
            unique=True,
            sqlite_where=db.text("status = 'ACTIVE' AND barcode IS NOT NULL"),
            postgresql_where=db.text("status = 'ACTIVE' AND barcode IS NOT NULL"),
        ),
        db.Index("ix_products_status_stock", "status", "stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    description = db.Column(db.Text, nullable=False)

    # Authoritative storage in cents
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    # ACTIVE or REMOVED (never physically deleted)
    status = db.Column(db.String(16), nullable=False, default=PRODUCT_ACTIVE, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == PRODUCT_ACTIVE

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} stock={self.stock} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "description": self.description,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Client(db.Model):
    """Customer a sale can be attributed to. Created on demand at checkout."""
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }
