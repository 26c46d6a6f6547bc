from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_context
from ..errors import PosError, error_response
from ..services import activity_service, reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_context
def sales_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        report = reporting_service.sales_report(g.company_id, g.shop_id, start, end)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sales-and-profit")
@require_context
def sales_and_profit_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        report = reporting_service.sales_and_profit(g.company_id, g.shop_id, start, end)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except PosError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to build sales and profit report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory-movement")
@require_context
def inventory_movement_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        report = reporting_service.inventory_movement_report(g.company_id, g.shop_id, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build inventory movement report")
        return jsonify({"error": "Internal server error"}), 500

    activity_service.log_activity(
        g.company_id, g.shop_id, g.user_id,
        f"Inventory movement report generated for period {start} to {end}",
    )
    return jsonify(report), 200
