# Overview: JSON encoding and error-to-response mapping shared by the route blueprints.

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from flask import current_app, jsonify
from flask.json.provider import DefaultJSONProvider

from .time_utils import to_utc_z
from .validation import InternalError, NotFoundError, ServiceError


class RetailJSONProvider(DefaultJSONProvider):
    """Decimals as JSON numbers, datetimes as ISO-8601 UTC with trailing Z."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, datetime):
            return to_utc_z(o)
        if isinstance(o, date):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def error_response(exc: Exception, action: str):
    """
    Map an exception raised by a service call to (body, status).

    NotFoundError -> 404, other ServiceErrors -> 400, anything else -> 500
    with a generic message (logged with traceback).
    """
    if isinstance(exc, ServiceError) and not isinstance(exc, InternalError):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        status = 404 if isinstance(exc, NotFoundError) else 400
        return jsonify(body), status

    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500
