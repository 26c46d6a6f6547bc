# Overview: Flask API routes for inventory stock rows and goods receipts.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_context
from ..errors import PosError, ValidationError, error_response
from ..services import inventory_service
from ..validation import parse_decimal, parse_goods_receipt, parse_identifier


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/")
@require_context
def list_inventory_route():
    needs_restock = request.args.get("needs_restock")
    flag = None
    if needs_restock is not None:
        flag = needs_restock.lower() == "true"
    stocks = inventory_service.list_stock(g.company_id, g.shop_id, needs_restock=flag)
    return jsonify({"inventory": [stock.to_dict() for stock in stocks]}), 200


@inventory_bp.get("/<product_id>")
@require_context
def get_inventory_route(product_id: str):
    try:
        stock = inventory_service.get_stock(g.company_id, g.shop_id, product_id)
        return jsonify(stock.to_dict()), 200
    except PosError as exc:
        return error_response(exc)


@inventory_bp.post("/")
@require_context
def register_stock_route():
    """Open an empty stock row: {"product_id", "minimum_quantity", "weighted_average_cost"}."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("inventory must be an object")
        stock = inventory_service.register_stock(
            g.company_id,
            g.shop_id,
            parse_identifier(data.get("product_id"), "product_id"),
            minimum_quantity=parse_decimal(data.get("minimum_quantity"), "minimum_quantity", non_negative=True),
            weighted_average_cost=parse_decimal(
                data.get("weighted_average_cost"), "weighted_average_cost", non_negative=True
            ),
        )
        return jsonify(stock.to_dict()), 201
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to register inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/grn")
@require_context
def receive_goods_route():
    """
    Goods received note.

    Body: {"product_id", "quantity", "unit_cost", "supplier_id", "category_id", "remarks"}
    Adds stock and rolls the weighted average cost forward.
    """
    try:
        receipt = parse_goods_receipt(request.get_json(silent=True))
        tx = inventory_service.receive_goods(
            g.company_id,
            g.shop_id,
            g.user_id,
            receipt.product_id,
            receipt.quantity,
            receipt.unit_cost,
            supplier_id=receipt.supplier_id,
            category_id=receipt.category_id,
            remarks=receipt.remarks,
        )
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to record goods receipt")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"transaction": tx.to_dict()}), 201
