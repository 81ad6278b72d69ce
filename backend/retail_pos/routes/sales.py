# Overview: Flask API route for recording sales; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..responses import error_response
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Record a completed sale.

    Body: {items: [{sku, quantity, sellingPrice}], payments: [{mode, provider?, amount}]}
    Returns 201 {saleId, billNumber, totalAmount, soldAt}.
    """
    try:
        result = sales_service.create_sale(request.get_json(silent=True))
    except Exception as exc:
        return error_response(exc, "create sale")

    current_app.logger.info(
        "Recorded sale %s bill=%s total=%s", result["saleId"], result["billNumber"], result["totalAmount"]
    )
    return jsonify(result), 201
