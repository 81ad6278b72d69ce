# Overview: Flask API routes for product/SKU creation and lookup.

from flask import Blueprint, current_app, jsonify, request

from ..responses import error_response
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.post("")
def create_product_route():
    """
    Create a variant with its first SKU, or a supplier SKU for an existing variant.

    Returns 201 {productId, sku, productVariantId}.
    """
    try:
        result = products_service.create_product(request.get_json(silent=True))
    except Exception as exc:
        return error_response(exc, "create product")

    current_app.logger.info("Created product %s sku=%s", result["productId"], result["sku"])
    return jsonify(result), 201


@products_bp.get("/<path:sku>")
def get_product_route(sku: str):
    try:
        product = products_service.get_product_by_sku(sku)
        return jsonify(product.to_dict()), 200
    except Exception as exc:
        return error_response(exc, "load product")
