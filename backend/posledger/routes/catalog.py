# Overview: Flask API routes for products and bills of materials.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_context
from ..errors import PosError, ValidationError, error_response
from ..services import bom_service, product_service
from ..validation import parse_bom_items, parse_identifier


products_bp = Blueprint("products", __name__, url_prefix="/api/products")
boms_bp = Blueprint("boms", __name__, url_prefix="/api/boms")


@products_bp.post("/")
@require_context
def create_product_route():
    try:
        product = product_service.create_product(g.company_id, g.user_id, request.get_json(silent=True))
        return jsonify(product.to_dict()), 201
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/")
@require_context
def list_products_route():
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    try:
        products = product_service.list_products(g.company_id, active_only=active_only)
        return jsonify({"products": [product.to_dict() for product in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<product_id>")
@require_context
def get_product_route(product_id: str):
    try:
        return jsonify(product_service.get_product(g.company_id, product_id).to_dict()), 200
    except PosError as exc:
        return error_response(exc)


def _bom_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("bill of materials must be an object")
    return data


@boms_bp.post("/")
@require_context
def create_bom_route():
    """Body: {"finished_good_id", "items": [{"product_id", "qty", "current_wac"}]} (max 100 items)."""
    try:
        data = _bom_body()
        bom = bom_service.create_bom(
            g.company_id,
            g.shop_id,
            g.user_id,
            parse_identifier(data.get("finished_good_id"), "finished_good_id"),
            parse_bom_items(data.get("items")),
        )
        return jsonify(bom.to_dict()), 201
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create BOM")
        return jsonify({"error": "Internal server error"}), 500


@boms_bp.put("/<finished_good_id>")
@require_context
def update_bom_route(finished_good_id: str):
    try:
        data = _bom_body()
        bom = bom_service.update_bom(
            g.company_id, g.shop_id, g.user_id, finished_good_id, parse_bom_items(data.get("items"))
        )
        return jsonify(bom.to_dict()), 200
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update BOM for %s", finished_good_id)
        return jsonify({"error": "Internal server error"}), 500


@boms_bp.get("/<finished_good_id>")
@require_context
def get_bom_route(finished_good_id: str):
    try:
        return jsonify(bom_service.get_bom(g.company_id, finished_good_id).to_dict()), 200
    except PosError as exc:
        return error_response(exc)
