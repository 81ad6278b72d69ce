# Overview: Pure pricing checks shared by sale validation and aging discount suggestions.

from __future__ import annotations

from decimal import Decimal

from ..money import ZERO, to_decimal
from ..validation import ConflictError

HUNDRED = Decimal("100")


class PriceExceedsMrpError(ConflictError):
    """Selling price is above the variant's maximum retail price."""


class DiscountExceedsLimitError(ConflictError):
    """Discount off MRP is larger than the variant allows."""


def discount_percent(selling_price, mrp) -> Decimal:
    """(mrp - selling_price) / mrp * 100; zero when mrp is not positive."""
    mrp = to_decimal(mrp)
    if mrp <= 0:
        return ZERO
    return (mrp - to_decimal(selling_price)) / mrp * HUNDRED


def validate_selling_price(selling_price, mrp, max_discount_percent, *, sku: str | None = None) -> None:
    """
    Raise PriceExceedsMrpError when selling_price > mrp, and
    DiscountExceedsLimitError when the discount off a positive MRP is above
    max_discount_percent (None counts as 0). No side effects.
    """
    price = to_decimal(selling_price)
    mrp = to_decimal(mrp)
    limit = to_decimal(max_discount_percent)
    label = f" for SKU {sku}" if sku else ""

    if price > mrp:
        raise PriceExceedsMrpError(
            f"Selling price{label} ({price}) exceeds MRP ({mrp})",
            details={"sku": sku, "selling_price": str(price), "mrp": str(mrp)},
        )

    if mrp > 0:
        pct = discount_percent(price, mrp)
        if pct > limit:
            raise DiscountExceedsLimitError(
                f"Discount{label} ({pct:.1f}%) exceeds max allowed ({limit}%)",
                details={
                    "sku": sku,
                    "discount_percent": str(pct.quantize(Decimal("0.01"))),
                    "max_discount_percent": str(limit),
                },
            )
