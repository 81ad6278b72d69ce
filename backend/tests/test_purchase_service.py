from datetime import datetime
from decimal import Decimal

import pytest

from retail_pos.models import Product, Purchase, PurchaseItem
from retail_pos.services import purchase_service
from retail_pos.services.purchase_service import (
    NoMatchingProductError,
    SupplierNotFoundError,
    VariantNotFoundError,
    effective_unit_cost,
)
from retail_pos.validation import ValidationError


def _stock(db_session, sku):
    db_session.expire_all()
    return db_session.query(Product).filter_by(sku=sku).one().quantity_in_stock


@pytest.fixture
def two_skus(make_variant, make_product):
    red = make_variant()
    blue = make_variant(attributes={"color": "Blue", "origin": "Kanchi"})
    return (
        make_product(red, "saree-red-ban-0001", quantity_in_stock=0),
        make_product(blue, "saree-blu-kan-0002", quantity_in_stock=4),
    )


def test_extra_charges_allocated_by_quantity_share():
    assert effective_unit_cost(Decimal("10"), 3, 5, Decimal("100")) == Decimal("30.00")
    assert effective_unit_cost(Decimal("20"), 2, 5, Decimal("100")) == Decimal("40.00")
    assert effective_unit_cost(Decimal("12.34"), 7, 7, None) == Decimal("12.34")


def test_effective_unit_cost_rounds_to_cents():
    # 10 + (1/3 * 10) = 13.333...
    assert effective_unit_cost(Decimal("10"), 1, 3, Decimal("10")) == Decimal("13.33")


def test_create_purchase_records_layers_and_restocks(db_session, supplier, two_skus):
    red, blue = two_skus
    result = purchase_service.create_purchase({
        "supplierId": supplier.id,
        "purchasedAt": "2026-02-05T10:30:00Z",
        "invoiceNo": "INV-77",
        "notes": "  ",
        "extraCharges": 100,
        "items": [
            {"productVariantId": red.product_variant_id, "quantity": 3, "unitCost": 10},
            {"productVariantId": blue.product_variant_id, "quantity": 2, "unitCost": "20"},
        ],
    })

    purchase = db_session.get(Purchase, result["purchaseId"])
    assert purchase.invoice_no == "INV-77"
    assert purchase.notes is None
    assert purchase.extra_charges == Decimal("100.00")
    assert purchase.purchased_at.replace(tzinfo=None) == datetime(2026, 2, 5, 10, 30)

    costs = {
        item.product_variant_id: item.effective_unit_cost
        for item in db_session.query(PurchaseItem).filter_by(purchase_id=purchase.id)
    }
    assert costs == {
        red.product_variant_id: Decimal("30.00"),
        blue.product_variant_id: Decimal("40.00"),
    }
    assert _stock(db_session, "saree-red-ban-0001") == 3
    assert _stock(db_session, "saree-blu-kan-0002") == 6


def test_zero_extra_charges_stored_as_null(db_session, supplier, two_skus):
    red, _ = two_skus
    result = purchase_service.create_purchase({
        "supplierId": supplier.id,
        "extraCharges": 0,
        "items": [{"productVariantId": red.product_variant_id, "quantity": 5, "unitCost": 7.5}],
    })
    purchase = db_session.get(Purchase, result["purchaseId"])
    assert purchase.extra_charges is None
    assert purchase.purchased_at is not None
    assert purchase.items[0].effective_unit_cost == Decimal("7.50")


def test_purchase_never_creates_products(db_session, supplier, two_skus, make_variant):
    red, _ = two_skus
    unstocked = make_variant(attributes={"color": "Green"})

    with pytest.raises(NoMatchingProductError):
        purchase_service.create_purchase({
            "supplierId": supplier.id,
            "items": [
                {"productVariantId": red.product_variant_id, "quantity": 3, "unitCost": 10},
                {"productVariantId": unstocked.id, "quantity": 1, "unitCost": 10},
            ],
        })

    assert db_session.query(Purchase).count() == 0
    assert db_session.query(PurchaseItem).count() == 0
    assert db_session.query(Product).count() == 2
    assert _stock(db_session, "saree-red-ban-0001") == 0


def test_unknown_supplier(db_session, two_skus):
    red, _ = two_skus
    with pytest.raises(SupplierNotFoundError):
        purchase_service.create_purchase({
            "supplierId": "missing",
            "items": [{"productVariantId": red.product_variant_id, "quantity": 1, "unitCost": 1}],
        })


def test_unknown_variant(db_session, supplier, two_skus):
    with pytest.raises(VariantNotFoundError) as exc:
        purchase_service.create_purchase({
            "supplierId": supplier.id,
            "items": [{"productVariantId": "missing", "quantity": 1, "unitCost": 1}],
        })
    assert exc.value.details == {"product_variant_ids": ["missing"]}


@pytest.mark.parametrize(
    "changes",
    [
        {"supplierId": None},
        {"items": []},
        {"items": [{"productVariantId": "v", "quantity": 0, "unitCost": 1}]},
        {"items": [{"productVariantId": "v", "quantity": 1, "unitCost": -1}]},
        {"items": [{"productVariantId": "v", "quantity": 1}]},
        {"extraCharges": -5},
        {"purchasedAt": "yesterday"},
        {"vendor": "x"},
    ],
)
def test_malformed_purchase_rejected(db_session, changes):
    payload = {
        "supplierId": "s",
        "items": [{"productVariantId": "v", "quantity": 1, "unitCost": 1}],
    }
    payload.update(changes)
    with pytest.raises(ValidationError):
        purchase_service.create_purchase(payload)
