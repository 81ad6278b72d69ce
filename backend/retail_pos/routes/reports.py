from flask import Blueprint, jsonify, request

from ..responses import error_response
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/reports")


@reports_bp.get("/daily-sales")
def daily_sales_report():
    try:
        report = reporting_service.daily_sales(request.args.get("date"))
        return jsonify(report), 200
    except Exception as exc:
        return error_response(exc, "build daily sales report")


@reports_bp.get("/sales-summary")
def sales_summary_report():
    try:
        report = reporting_service.sales_summary(request.args.get("from"), request.args.get("to"))
        return jsonify(report), 200
    except Exception as exc:
        return error_response(exc, "build sales summary")


@reports_bp.get("/sales-list")
def sales_list_report():
    try:
        report = reporting_service.sales_list(request.args.get("from"), request.args.get("to"))
        return jsonify(report), 200
    except Exception as exc:
        return error_response(exc, "build sales list")


@reports_bp.get("/sales-profit")
def sales_profit_report():
    try:
        report = reporting_service.sales_profit(request.args.get("from"), request.args.get("to"))
        return jsonify(report), 200
    except Exception as exc:
        return error_response(exc, "build sales profit report")


@reports_bp.get("/inventory")
def inventory_report():
    try:
        return jsonify(reporting_service.inventory_snapshot()), 200
    except Exception as exc:
        return error_response(exc, "build inventory snapshot")


@reports_bp.get("/inventory-valuation")
def inventory_valuation_report():
    try:
        return jsonify(reporting_service.inventory_valuation()), 200
    except Exception as exc:
        return error_response(exc, "build inventory valuation")


@reports_bp.get("/inventory-aging")
def inventory_aging_report():
    try:
        report = reporting_service.inventory_aging(
            as_of_date=request.args.get("asOfDate"),
            category_id=request.args.get("categoryId"),
        )
        return jsonify(report), 200
    except Exception as exc:
        return error_response(exc, "build inventory aging report")
