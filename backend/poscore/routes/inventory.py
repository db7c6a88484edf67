# Overview: Flask API routes for inventory reads.

from flask import Blueprint, jsonify

from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/low-stock")
def low_stock_route():
    """Active products at or below their minimum stock, lowest first."""
    products = inventory_service.list_low_stock()
    return jsonify({
        "count": len(products),
        "products": [p.to_dict() for p in products],
    }), 200


@inventory_bp.get("/products/<int:product_id>")
def product_stock_route(product_id: int):
    try:
        product = inventory_service.get_product(product_id)
    except inventory_service.ProductNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404

    return jsonify({
        "product": product.to_dict(),
        "is_low": inventory_service.is_low(product),
    }), 200
