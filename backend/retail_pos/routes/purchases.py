# Overview: Flask API route for recording supplier purchases.

from flask import Blueprint, current_app, jsonify, request

from ..responses import error_response
from ..services import purchase_service


purchases_bp = Blueprint("purchases", __name__, url_prefix="/purchases")


@purchases_bp.post("")
def create_purchase_route():
    try:
        result = purchase_service.create_purchase(request.get_json(silent=True))
    except Exception as exc:
        return error_response(exc, "create purchase")

    current_app.logger.info("Recorded purchase %s", result["purchaseId"])
    return jsonify(result), 201
