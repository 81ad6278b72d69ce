from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from retail_pos.models import AttributeDefinition, Category, Product, ProductVariant, Supplier
from retail_pos.services import products_service
from retail_pos.services.products_service import (
    CategoryNotFoundError,
    DuplicateProductError,
    attribute_short_codes,
    sku_prefix,
)
from retail_pos.services.purchase_service import SupplierNotFoundError, VariantNotFoundError
from retail_pos.services.sales_service import ProductNotFoundError
from retail_pos.validation import ValidationError


def _payload(category, supplier, **changes):
    payload = {
        "categoryId": category.id,
        "supplierId": supplier.id,
        "attributes": {"color": "Red", "origin": "Banaras"},
        "mrp": 2500,
        "defaultSellingPrice": 2200,
        "maxDiscountPercent": 20,
        "quantityInStock": 10,
    }
    payload.update(changes)
    return payload


def test_sku_prefix_sanitizes_slug():
    assert sku_prefix(Category(id="x", name="Silk", slug="Silk Sarees!")) == "silk-sarees"
    assert sku_prefix(Category(id="abcdef123456", name="No slug", slug=None)) == "cat-abcdef"


def test_attribute_short_codes_ordered_by_key():
    assert attribute_short_codes({"origin": "Banaras", "color": "Red", "size": None}) == "red-ban"
    assert attribute_short_codes({}) == ""
    assert attribute_short_codes(None) == ""


def test_create_product_generates_sequential_skus(db_session, category, supplier):
    first = products_service.create_product(_payload(category, supplier))
    second = products_service.create_product(
        _payload(category, supplier, attributes={"color": "Blue", "origin": "Kanchipuram"})
    )

    assert first["sku"] == "saree-red-ban-0001"
    assert second["sku"] == "saree-blu-kan-0002"

    product = db_session.get(Product, first["productId"])
    assert product.quantity_in_stock == 10
    assert product.product_variant_id == first["productVariantId"]
    variant = db_session.get(ProductVariant, first["productVariantId"])
    assert variant.attributes == {"color": "Red", "origin": "Banaras"}
    assert variant.mrp == Decimal("2500.00")
    assert variant.max_discount_percent == Decimal("20.00")


def test_sku_without_attributes_or_slug(db_session, supplier):
    cat = Category(id="abcdef123456", name="Misc")
    db_session.add(cat)
    db_session.commit()

    result = products_service.create_product(_payload(cat, supplier, attributes={}))
    assert result["sku"] == "cat-abcdef-0001"


def test_new_supplier_sku_for_existing_variant(db_session, category, supplier):
    first = products_service.create_product(_payload(category, supplier))
    other = Supplier(name="Kanchi Weavers", code="SUP-02")
    db_session.add(other)
    db_session.commit()

    second = products_service.create_product({
        "productVariantId": first["productVariantId"],
        "supplierId": other.id,
    })
    assert second["productVariantId"] == first["productVariantId"]
    assert second["sku"] == "saree-red-ban-0002"
    assert db_session.get(Product, second["productId"]).quantity_in_stock == 0

    with pytest.raises(DuplicateProductError):
        products_service.create_product({
            "productVariantId": first["productVariantId"],
            "supplierId": other.id,
        })


def test_existing_variant_rejects_pricing_fields(db_session, category, supplier):
    first = products_service.create_product(_payload(category, supplier))
    with pytest.raises(ValidationError):
        products_service.create_product({
            "productVariantId": first["productVariantId"],
            "supplierId": supplier.id,
            "mrp": 10,
        })


def test_unknown_references(db_session, category, supplier):
    with pytest.raises(CategoryNotFoundError):
        products_service.create_product(_payload(category, supplier, categoryId="missing"))
    with pytest.raises(SupplierNotFoundError):
        products_service.create_product(_payload(category, supplier, supplierId="missing"))
    with pytest.raises(VariantNotFoundError):
        products_service.create_product({"productVariantId": "missing", "supplierId": supplier.id})
    assert db_session.query(ProductVariant).count() == 0


@pytest.mark.parametrize(
    "changes",
    [
        {"defaultSellingPrice": 2600},
        {"maxDiscountPercent": 101},
        {"maxDiscountPercent": -1},
        {"maxDiscountPercent": "12.345"},
        {"mrp": "2500.001"},
        {"mrp": None},
        {"attributes": {"origin": "Banaras"}},
        {"attributes": {"color": "Red", "fabric": "Silk"}},
        {"attributes": {"color": 5}},
        {"attributes": "red"},
        {"quantityInStock": -1},
        {"sku": "custom"},
    ],
)
def test_invalid_product_payloads(db_session, category, supplier, changes):
    with pytest.raises(ValidationError):
        products_service.create_product(_payload(category, supplier, **changes))
    assert db_session.query(Product).count() == 0


def test_enum_and_boolean_attributes(db_session, category, supplier):
    db_session.add_all([
        AttributeDefinition(
            category_id=category.id, name="Size", key="size", data_type="enum", enum_values=["S", "M", "L"]
        ),
        AttributeDefinition(category_id=category.id, name="Handloom", key="handloom", data_type="boolean"),
    ])
    db_session.commit()

    with pytest.raises(ValidationError):
        products_service.create_product(_payload(category, supplier, attributes={"color": "Red", "size": "XL"}))

    result = products_service.create_product(
        _payload(category, supplier, attributes={"color": "Red", "size": "M", "handloom": True})
    )
    assert result["sku"] == "saree-red-tru-m-0001"


def test_get_product_by_sku(db_session, stocked_product):
    product = products_service.get_product_by_sku(" saree-red-ban-0001 ")
    assert product.id == stocked_product.id
    data = product.to_dict()
    assert data["variant"]["mrp"] == Decimal("100.00")
    assert data["supplier"]["code"] == "SUP-01"

    with pytest.raises(ProductNotFoundError):
        products_service.get_product_by_sku("nope")


@pytest.mark.parametrize(
    "pricing",
    [
        {"mrp": Decimal("100"), "default_selling_price": Decimal("120"), "max_discount_percent": Decimal("10")},
        {"mrp": Decimal("100"), "default_selling_price": Decimal("90"), "max_discount_percent": Decimal("101")},
        {"mrp": Decimal("100"), "default_selling_price": Decimal("90"), "max_discount_percent": Decimal("-1")},
    ],
)
def test_variant_pricing_rules_enforced_by_schema(db_session, category, pricing):
    db_session.add(ProductVariant(category_id=category.id, attributes={"color": "Red"}, **pricing))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()
    assert db_session.query(ProductVariant).count() == 0
