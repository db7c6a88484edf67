# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/poscore/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..decorators import require_actor
from ..time_utils import parse_business_date
from ..validation import ConflictError, NotFoundError, ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@require_actor
def create_sale_route():
    """
    Create a complete sale from a cart.

    Body: {items: [{product_id, quantity, unit_price_cents}], payment_method,
           amount_received_cents?, tax_cents?, client?: {id} | {name, phone?}}
    """
    try:
        data = request.get_json(silent=True) or {}

        sale = sales_service.create_sale(
            actor_id=g.actor_id,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            amount_received_cents=data.get("amount_received_cents"),
            client=data.get("client"),
            tax_cents=data.get("tax_cents", 0),
        )

        return jsonify({
            "sale": sale.to_dict(),
            "lines": [line.to_dict() for line in sale.lines],
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
def list_sales_route():
    """List the non-voided sales of a business day (?date=YYYY-MM-DD, default today)."""
    try:
        day = parse_business_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    include_voided = request.args.get("include_voided", "false").lower() == "true"
    sales = sales_service.list_sales(day, include_voided=include_voided)
    return jsonify({"sales": sales}), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with lines, client and profit."""
    try:
        return jsonify(sales_service.sale_detail(sale_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404


@sales_bp.post("/<int:sale_id>/void")
@require_actor
def void_sale_route(sale_id: int):
    """Void a sale and restore its stock."""
    try:
        sale = sales_service.void_sale(sale_id=sale_id, actor_id=g.actor_id)
        current_app.logger.info("Sale %s voided by actor %s", sale.sale_number, g.actor_id)
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500
