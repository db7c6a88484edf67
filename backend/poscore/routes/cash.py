# Overview: Flask API routes for cash movements and drawer reconciliation.

# backend/poscore/routes/cash.py
"""
Cash API Routes

DESIGN:
- Manual movements: record, list by day, delete
- Daily summary is a live read; closures are stored snapshots
- Mutations need the actor id forwarded by the auth layer
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import cash_service, reconciliation_service
from ..decorators import require_actor
from ..time_utils import business_today, parse_business_date
from ..validation import ConflictError, NotFoundError, ValidationError


cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


def _requested_day():
    return parse_business_date(request.args.get("date")) or business_today()


# =============================================================================
# MANUAL MOVEMENTS
# =============================================================================

@cash_bp.post("/movements")
@require_actor
def record_movement_route():
    """Record a manual income or expense. Body: {type, amount_cents, description}"""
    try:
        data = request.get_json(silent=True) or {}
        movement = cash_service.record_movement(
            actor_id=g.actor_id,
            movement_type=data.get("type"),
            amount_cents=data.get("amount_cents"),
            description=data.get("description"),
        )
        return jsonify({"movement": movement.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/movements")
def list_movements_route():
    try:
        day = _requested_day()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    movements = cash_service.list_for_date(day)
    return jsonify({
        "date": day.isoformat(),
        "movements": [m.to_dict() for m in movements],
    }), 200


@cash_bp.delete("/movements/<int:movement_id>")
@require_actor
def delete_movement_route(movement_id: int):
    try:
        cash_service.delete_movement(movement_id, actor_id=g.actor_id)
        return jsonify({"deleted": movement_id}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete cash movement")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# RECONCILIATION
# =============================================================================

@cash_bp.get("/summary")
def daily_summary_route():
    try:
        day = _requested_day()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    summary = reconciliation_service.compute_daily_summary(day)
    return jsonify({"summary": summary.to_dict()}), 200


@cash_bp.post("/closures")
@require_actor
def create_closure_route():
    """Close today's drawer. Body: {counted_cash_cents, notes?}"""
    try:
        data = request.get_json(silent=True) or {}
        closure = reconciliation_service.create_closure(
            actor_id=g.actor_id,
            counted_cash_cents=data.get("counted_cash_cents"),
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Cash closure %s by actor %s: difference %s cents",
            closure.id, g.actor_id, closure.difference_cents,
        )
        return jsonify({"closure": closure.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create cash closure")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/closures")
def closure_history_route():
    try:
        closures = reconciliation_service.closure_history(request.args.get("limit"))
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    return jsonify({"closures": [c.to_dict() for c in closures]}), 200


@cash_bp.get("/closures/<int:closure_id>")
def closure_detail_route(closure_id: int):
    try:
        return jsonify(reconciliation_service.closure_detail(closure_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
