# Overview: Flask API routes for the order lifecycle; parses input and returns JSON responses.

"""Order API routes: create, look up, cancel and return sales orders."""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_context
from ..errors import PosError, error_response
from ..services import order_service
from ..validation import parse_order_payload, parse_return_items


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/")
@require_context
def create_order_route():
    """
    Record a sale.

    Body: {"items": [{"product_id", "quantity", "selling_price", "discount_amount"}],
           "bill_total", "cash_amount", "card_amount", ...}
    Returns 201 with the transaction code.
    """
    try:
        order = parse_order_payload(request.get_json(silent=True))
        transaction_code = order_service.create_order(g.company_id, g.shop_id, g.user_id, order)
        return jsonify({"transaction_code": transaction_code}), 201
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/")
@require_context
def list_orders_route():
    status = request.args.get("status")
    try:
        orders = order_service.list_orders(g.company_id, g.shop_id, status=status)
        return jsonify({"orders": orders}), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<transaction_code>")
@require_context
def get_order_route(transaction_code: str):
    try:
        return jsonify(order_service.get_order(g.company_id, g.shop_id, transaction_code)), 200
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to get order %s", transaction_code)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<transaction_code>/cancel")
@require_context
def cancel_order_route(transaction_code: str):
    """Cancel a Completed order and restore the inventory it consumed."""
    try:
        order = order_service.cancel_order(g.company_id, g.shop_id, g.user_id, transaction_code)
        return jsonify({"message": "Order cancelled successfully", "order": order}), 200
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to cancel order %s", transaction_code)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<transaction_code>/returns")
@require_context
def return_order_route(transaction_code: str):
    """
    Return items of an order.

    Body: {"items": [{"product_id", "quantity", "condition"}]}
    condition: Good (back to stock) | Damaged | Expired (written off as wastage)
    """
    try:
        data = request.get_json(silent=True) or {}
        items = parse_return_items(data.get("items") if isinstance(data, dict) else None)
        order = order_service.return_order_items(g.company_id, g.shop_id, g.user_id, transaction_code, items)
        return jsonify({"message": "Order items returned successfully", "order": order}), 200
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to return items on order %s", transaction_code)
        return jsonify({"error": "Internal server error"}), 500
