"""
Pytest fixtures for retail_pos backend tests.

Provides test database setup, catalog factories, and test client.
"""

from decimal import Decimal

import pytest

from retail_pos import create_app
from retail_pos.extensions import db
from retail_pos.models import AttributeDefinition, Category, Product, ProductVariant, Supplier


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def category(db_session):
    """Saree category with a required color and an optional origin attribute."""
    cat = Category(name="Saree", slug="saree")
    db_session.add(cat)
    db_session.flush()
    db_session.add_all([
        AttributeDefinition(category_id=cat.id, name="Color", key="color", data_type="string", required=True),
        AttributeDefinition(category_id=cat.id, name="Origin", key="origin", data_type="string", required=False),
    ])
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def supplier(db_session):
    sup = Supplier(name="Puneet Textiles", code="SUP-01")
    db_session.add(sup)
    db_session.commit()
    return sup


@pytest.fixture(scope='function')
def make_variant(db_session, category):
    """Factory: ProductVariant in the Saree category (mrp 100, default 90, max discount 10%)."""
    def _make(mrp="100", default_selling_price="90", max_discount_percent="10", attributes=None):
        variant = ProductVariant(
            category_id=category.id,
            attributes=attributes if attributes is not None else {"color": "Red", "origin": "Banaras"},
            mrp=Decimal(mrp),
            default_selling_price=Decimal(default_selling_price),
            max_discount_percent=Decimal(max_discount_percent),
        )
        db_session.add(variant)
        db_session.commit()
        return variant
    return _make


@pytest.fixture(scope='function')
def make_product(db_session, supplier):
    """Factory: Product (SKU) for a variant, stocked by the default supplier unless given."""
    def _make(variant, sku, quantity_in_stock=10, supplier_id=None):
        product = Product(
            sku=sku,
            product_variant_id=variant.id,
            supplier_id=supplier_id or supplier.id,
            quantity_in_stock=quantity_in_stock,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def stocked_product(make_variant, make_product):
    """saree-red-ban-0001 with 10 in stock (mrp 100, max discount 10%)."""
    return make_product(make_variant(), "saree-red-ban-0001", quantity_in_stock=10)


def sale_payload(sku, quantity, selling_price, payments=None):
    """Request body for a single-line sale paid in cash unless payments are given."""
    total = Decimal(str(selling_price)) * quantity
    return {
        "items": [{"sku": sku, "quantity": quantity, "sellingPrice": selling_price}],
        "payments": payments if payments is not None else [{"mode": "CASH", "amount": str(total)}],
    }


@pytest.fixture(scope='session')
def build_sale():
    return sale_payload
