"""
Sales Service - atomic sale creation and voiding

WHY: A sale touches several rows at once (client, sale, lines, stock of
every product in the cart). Either all of them change or none do.

DESIGN PRINCIPLES:
- All input validation happens before the first write
- Stock is reserved with compare-and-decrement, never read-then-write
- Line prices come from the caller; cost is snapshotted from the catalog
- Sales are voided, never deleted
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Client, Product, Sale, SaleLine
from ..models.sales import PAYMENT_METHODS, SALE_ACTIVE, SALE_VOIDED
from poscore.time_utils import business_today, day_bounds, utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_cents,
    coerce_int,
    coerce_text,
    require_actor_id,
)
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .document_service import next_document_number
from .inventory_service import check_and_reserve, get_product, release
from .ledger_service import append_ledger_event


class SaleNotFound(NotFoundError):
    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} not found", details={"sale_id": sale_id})


class ClientNotFound(NotFoundError):
    def __init__(self, client_id: int):
        super().__init__(f"Client {client_id} not found", details={"client_id": client_id})


class AlreadyVoided(ConflictError):
    def __init__(self, sale: Sale):
        super().__init__(
            f"Sale {sale.sale_number} is already voided",
            details={"sale_id": sale.id, "sale_number": sale.sale_number},
        )


@dataclass(frozen=True)
class SaleItem:
    product_id: int
    quantity: int
    unit_price_cents: int


@dataclass(frozen=True)
class ClientRef:
    """Either an existing client id, or a name (+ phone) to find-or-create."""
    client_id: int | None = None
    name: str | None = None
    phone: str | None = None


def _normalize_items(items: Iterable[Any] | None) -> list[SaleItem]:
    if items is None or isinstance(items, (str, bytes, dict)):
        raise ValidationError("items must be a non-empty list")
    items = list(items)
    if not items:
        raise ValidationError("Cannot create a sale with no items")

    cart = []
    for index, raw in enumerate(items):
        if isinstance(raw, SaleItem):
            raw = {
                "product_id": raw.product_id,
                "quantity": raw.quantity,
                "unit_price_cents": raw.unit_price_cents,
            }
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        product_id = coerce_int(raw.get("product_id"), f"items[{index}].product_id")
        quantity = coerce_int(raw.get("quantity"), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        unit_price = coerce_cents(raw.get("unit_price_cents"), f"items[{index}].unit_price_cents")

        cart.append(SaleItem(product_id=product_id, quantity=quantity, unit_price_cents=unit_price))
    return cart


def _normalize_payment_method(payment_method: Any) -> str:
    method = str(payment_method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )
    return method


def _normalize_client_ref(client: Any) -> ClientRef | None:
    if client is None or isinstance(client, ClientRef):
        return client
    if not isinstance(client, dict):
        raise ValidationError("client must be an object with either id or name")

    # A supplied name takes precedence over an id
    name = coerce_text(client.get("name"), "client.name", max_length=255, required=False)
    if name:
        phone = coerce_text(client.get("phone"), "client.phone", max_length=20, required=False)
        return ClientRef(name=name, phone=phone)

    if client.get("id") is not None:
        return ClientRef(client_id=coerce_int(client.get("id"), "client.id"))

    return None


def _validate_catalog(cart: list[SaleItem]) -> None:
    """Read-only checks against the catalog, run before any write."""
    enforce_price = current_app.config.get("ENFORCE_CATALOG_PRICE", False)
    for item in cart:
        product = get_product(item.product_id, require_active=True)
        if enforce_price and item.unit_price_cents != product.sale_price_cents:
            raise ValidationError(
                f"Unit price for {product.description} does not match the catalog price",
                details={
                    "product_id": product.id,
                    "unit_price_cents": item.unit_price_cents,
                    "catalog_price_cents": product.sale_price_cents,
                },
            )


def _resolve_client(ref: ClientRef | None) -> int | None:
    if ref is None:
        return None

    if ref.name:
        # Serialized by the caller's BEGIN IMMEDIATE; names are not unique keys
        client = db.session.query(Client).filter_by(name=ref.name).order_by(Client.id).first()
        if client is None:
            client = Client(name=ref.name, phone=ref.phone, created_at=utcnow())
            db.session.add(client)
            db.session.flush()
        return client.id

    client = db.session.query(Client).filter_by(id=ref.client_id).first()
    if client is None:
        raise ClientNotFound(ref.client_id)
    return client.id


def _reserve_stock(cart: list[SaleItem]) -> dict[int, Product]:
    """
    Reserve the aggregated quantity of every product in the cart.

    Products are reserved in id order so concurrent carts touching the
    same products take row locks in the same order.
    """
    product_totals: dict[int, int] = {}
    for item in cart:
        product_totals[item.product_id] = product_totals.get(item.product_id, 0) + item.quantity

    reserved = {}
    for product_id in sorted(product_totals):
        reserved[product_id] = check_and_reserve(product_id, product_totals[product_id])
    return reserved


def create_sale(
    actor_id: int,
    items: Iterable[Any],
    payment_method: str,
    amount_received_cents: int | None = None,
    client: Any = None,
    tax_cents: int = 0,
) -> Sale:
    """
    Create and persist a complete sale in one transaction.

    Args:
        actor_id: Authenticated cashier performing the sale (required)
        items: [{product_id, quantity, unit_price_cents}, ...] in display order
        payment_method: cash, card or transfer
        amount_received_cents: Amount tendered; defaults to the sale total
        client: None, {"id": n} or {"name": str, "phone": str | None}
        tax_cents: Tax computed by the caller (defaults to zero)

    Raises:
        ValidationError: malformed input (nothing written)
        ProductNotFound / ClientNotFound: unknown reference (nothing written)
        InsufficientStock: a product is short (everything rolled back)
    """
    actor = require_actor_id(actor_id)
    cart = _normalize_items(items)
    method = _normalize_payment_method(payment_method)
    tax = coerce_cents(tax_cents, "tax_cents")
    received = None
    if amount_received_cents is not None:
        received = coerce_cents(amount_received_cents, "amount_received_cents")
    client_ref = _normalize_client_ref(client)

    _validate_catalog(cart)

    def _op():
        begin_write_transaction()

        client_id = _resolve_client(client_ref)
        products = _reserve_stock(cart)

        lines = []
        subtotal = 0
        for item in cart:
            product = products[item.product_id]
            line_total = item.quantity * item.unit_price_cents
            subtotal += line_total
            lines.append(SaleLine(
                product_id=product.id,
                product_barcode=product.barcode,
                product_description=product.description,
                unit_cost_cents=product.purchase_price_cents or 0,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                line_total_cents=line_total,
            ))

        total = subtotal + tax
        amount_paid = received if received is not None else total

        sale = Sale(
            sale_number=next_document_number(document_type="SALE", prefix="V"),
            actor_id=actor,
            client_id=client_id,
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=total,
            payment_method=method,
            amount_paid_cents=amount_paid,
            change_cents=max(0, amount_paid - total),
            status=SALE_ACTIVE,
            created_at=utcnow(),
        )
        sale.lines = lines
        db.session.add(sale)
        db.session.flush()

        append_ledger_event(
            event_type="sale.created",
            event_category="sales",
            entity_type="sale",
            entity_id=sale.id,
            actor_id=actor,
            sale_id=sale.id,
            occurred_at=sale.created_at,
            note=f"Sale {sale.sale_number} created",
            payload=f"total_cents={total},payment_method={method},lines={len(lines)}",
        )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def void_sale(sale_id: int, actor_id: int) -> Sale:
    """
    Void a sale and return every line's quantity to stock.

    Releases and the status change commit together. A second void of the
    same sale raises AlreadyVoided and changes nothing.
    """
    actor = require_actor_id(actor_id)

    def _op():
        begin_write_transaction()
        sale = (
            lock_for_update(db.session.query(Sale).filter_by(id=sale_id))
            .populate_existing()
            .first()
        )
        if not sale:
            raise SaleNotFound(sale_id)

        if sale.status == SALE_VOIDED:
            raise AlreadyVoided(sale)

        for line in sale.lines:
            release(line.product_id, line.quantity)

        sale.status = SALE_VOIDED
        sale.voided_at = utcnow()
        sale.voided_by_actor_id = actor

        append_ledger_event(
            event_type="sale.voided",
            event_category="sales",
            entity_type="sale",
            entity_id=sale.id,
            actor_id=actor,
            sale_id=sale.id,
            occurred_at=sale.voided_at,
            note=f"Sale {sale.sale_number} voided",
            payload=",".join(f"{line.product_id}:{line.quantity}" for line in sale.lines),
        )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise SaleNotFound(sale_id)
    return sale


def sale_profit_cents(sale: Sale) -> int:
    """Profit from the cost snapshots: sum((unit_price - unit_cost) * quantity)."""
    return sum(line.profit_cents for line in sale.lines)


def sale_detail(sale_id: int) -> dict:
    sale = get_sale(sale_id)
    return {
        "sale": sale.to_dict(),
        "lines": [line.to_dict() for line in sale.lines],
        "client": sale.client.to_dict() if sale.client else None,
        "profit_cents": sale_profit_cents(sale),
    }


def list_sales(day: date | None = None, *, include_voided: bool = False) -> list[dict]:
    """Sales of one business day, newest first, with profit per sale."""
    day = day or business_today()
    start, end = day_bounds(day)

    profit = func.coalesce(
        func.sum((SaleLine.unit_price_cents - SaleLine.unit_cost_cents) * SaleLine.quantity),
        0,
    )
    query = (
        db.session.query(Sale, profit.label("profit_cents"))
        .outerjoin(SaleLine, SaleLine.sale_id == Sale.id)
        .filter(Sale.created_at >= start, Sale.created_at < end)
    )
    if not include_voided:
        query = query.filter(Sale.status == SALE_ACTIVE)

    rows = query.group_by(Sale.id).order_by(Sale.created_at.desc(), Sale.id.desc()).all()
    return [
        {
            **sale.to_dict(),
            "client_name": sale.client.name if sale.client else None,
            "profit_cents": int(profit_cents or 0),
        }
        for sale, profit_cents in rows
    ]
