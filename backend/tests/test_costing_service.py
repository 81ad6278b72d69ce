from decimal import Decimal

from retail_pos.services.costing_service import average_costs, load_average_costs
from retail_pos.services.purchase_service import create_purchase


def test_average_costs_weights_by_quantity():
    rows = [
        ("v1", 10, Decimal("5")),
        ("v1", 5, Decimal("8")),
        ("v2", 4, Decimal("2.50")),
    ]
    costs = average_costs(rows)
    assert costs["v1"] == Decimal("6")
    assert costs["v2"] == Decimal("2.50")


def test_average_costs_zero_quantity_is_zero():
    assert average_costs([("v1", 0, Decimal("9"))]) == {"v1": Decimal("0")}


def test_average_costs_no_rounding():
    costs = average_costs([("v1", 1, Decimal("1")), ("v1", 2, Decimal("2"))])
    assert costs["v1"] == Decimal("5") / Decimal("3")


def test_load_average_costs_reads_purchase_layers(db_session, supplier, make_variant, make_product):
    bought = make_variant()
    never_bought = make_variant(attributes={"color": "Blue"})
    make_product(bought, "saree-red-ban-0001", quantity_in_stock=0)

    create_purchase({
        "supplierId": supplier.id,
        "items": [{"productVariantId": bought.id, "quantity": 10, "unitCost": 5}],
    })
    create_purchase({
        "supplierId": supplier.id,
        "items": [{"productVariantId": bought.id, "quantity": 5, "unitCost": 8}],
    })

    costs = load_average_costs([bought.id, never_bought.id])
    assert costs[bought.id] == Decimal("6")
    assert costs[never_bought.id] == Decimal("0")
