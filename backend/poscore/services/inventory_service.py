# Overview: Service-layer operations for inventory; owns every write to Product.stock.

# backend/poscore/services/inventory_service.py

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from ..models.catalog import PRODUCT_ACTIVE
from ..validation import ConflictError, NotFoundError, ValidationError
"""
Inventory Invariants (authoritative)

Stock model:
- Product.stock is a mutable counter; this module is its only writer.
- stock >= 0 at every commit (also enforced by a CHECK constraint).

Compare-and-decrement:
- A reservation is ONE conditional UPDATE:
    stock = stock - q WHERE id = :id AND status = 'ACTIVE' AND stock >= q
  The sufficiency check and the decrement cannot be separated by another
  writer, so concurrent sales can never oversell.
- Zero affected rows means the product is missing/removed or short; the
  stock row is left untouched.

Transactions:
- Reserve/release never commit. They run inside the caller's transaction so
  a failed sale or void rolls every stock change back together.
"""


class ProductNotFound(NotFoundError):
    """Raised when a product id does not exist (or is removed, for sales)."""
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})
        self.product_id = product_id


class InsufficientStock(ConflictError):
    """Raised when a reservation asks for more units than are on hand."""
    def __init__(self, product_id: int, available: int, requested: int, description: str | None = None):
        label = description or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: available {available}, requested {requested}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
                "shortfall": requested - available,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    return quantity


def get_product(product_id: int, *, require_active: bool = False) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise ProductNotFound(product_id)
    if require_active and not product.is_active:
        raise ProductNotFound(product_id)
    return product


def check_and_reserve(product_id: int, quantity: int) -> Product:
    """
    Atomically verify stock >= quantity and decrement it.

    Returns the refreshed product (stock already decremented).

    Raises:
        ProductNotFound: product missing or removed
        InsufficientStock: not enough units; stock unchanged
    """
    quantity = _validate_quantity(quantity)

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.status == PRODUCT_ACTIVE,
            Product.stock >= quantity,
        )
        .values(
            stock=Product.stock - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    product = (
        db.session.query(Product)
        .populate_existing()
        .filter_by(id=product_id)
        .first()
    )

    if not result.rowcount:
        if product is None or not product.is_active:
            raise ProductNotFound(product_id)
        raise InsufficientStock(
            product_id,
            available=product.stock,
            requested=quantity,
            description=product.description,
        )

    return product


def release(product_id: int, quantity: int) -> Product:
    """
    Atomically return units to stock (used by sale voids).

    Removed products are restocked too: a void must restore the counter
    the original sale decremented.
    """
    quantity = _validate_quantity(quantity)

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock=Product.stock + quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise ProductNotFound(product_id)

    return (
        db.session.query(Product)
        .populate_existing()
        .filter_by(id=product_id)
        .one()
    )


def is_low(product: Product) -> bool:
    """Low-stock predicate used by reporting: stock <= min_stock."""
    return product.stock <= product.min_stock


def low_stock_query():
    return db.session.query(Product).filter(
        Product.status == PRODUCT_ACTIVE,
        Product.stock <= Product.min_stock,
    )


def list_low_stock() -> list[Product]:
    """Active products at or below their minimum, most urgent first."""
    return low_stock_query().order_by(Product.stock.asc(), Product.id.asc()).all()
