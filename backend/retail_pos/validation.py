from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from retail_pos.time_utils import parse_iso_datetime


# Maximum money value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")


class ServiceError(Exception):
    """Base for errors raised by the service layer, optionally carrying details."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""


class ConflictError(ServiceError, ValueError):
    """400-level business rule conflict (e.g., insufficient stock, duplicate SKU)."""


class NotFoundError(ServiceError, LookupError):
    """404-level reference to an entity that does not exist."""


class InternalError(ServiceError, RuntimeError):
    """500-level storage failure; message is never detailed to the caller."""


def require_object(payload: Any, where: str = "payload") -> dict:
    if payload is None:
        raise ValidationError(f"{where} is required")
    if not isinstance(payload, dict):
        raise ValidationError(f"{where} must be a JSON object")
    return payload


def reject_unknown_fields(payload: dict, allowed: Iterable[str], where: str = "payload") -> None:
    allowed = set(allowed)
    unknown = sorted(k for k in payload.keys() if k not in allowed)
    if unknown:
        raise ValidationError(f"{where}: unknown fields: {', '.join(unknown)}")


def require_fields(payload: dict, required: Iterable[str], where: str = "payload") -> None:
    missing = [f for f in required if f not in payload or payload[f] is None]
    if missing:
        raise ValidationError(f"{where}: missing required fields: {', '.join(missing)}")


def require_list(value: Any, field: str) -> list:
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{field} must be a non-empty array")
    return value


def coerce_str(value: Any, field: str) -> str:
    """Non-empty, stripped string. Numbers are not coerced to strings."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    s = value.strip()
    if not s:
        raise ValidationError(f"{field} cannot be blank")
    return s


def coerce_optional_str(value: Any, field: str) -> str | None:
    """Optional string: None or blank -> None."""
    if value is None:
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{field} must be a string")
    s = str(value).strip()
    return s or None


def coerce_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer: rejects bools, floats, decimals and scientific notation.
    Plain digit strings are accepted.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def coerce_money(value: Any, field: str, *, minimum: Decimal | None = Decimal("0")) -> Decimal:
    """
    Finite decimal amount with at most two decimal places. Accepts ints, floats
    and numeric strings; floats go through str() so 19.99 stays 19.99.
    Sub-cent values are rejected, not rounded.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number")
        result = Decimal(str(value))
    elif isinstance(value, (int, Decimal)):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if result > MAX_MONEY:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")
    if result.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than 2 decimal places")
    return result


def coerce_datetime(value: Any, field: str):
    """ISO-8601 date or datetime string -> UTC-naive datetime."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    return dt
