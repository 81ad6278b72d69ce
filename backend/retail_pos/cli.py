# Overview: Flask CLI command groups for schema bootstrap and demo catalog data.

# backend/retail_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently insert demo categories, attributes, a supplier and one stocked SKU.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import AttributeDefinition, Category, Product, ProductVariant, Subcategory, Supplier


@click.group('system')
def system_group():
    """Schema bootstrap commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete")


@click.group('catalog')
def catalog_group():
    """Catalog data commands."""


def _get_or_create(model, lookup: dict, defaults: dict | None = None):
    instance = db.session.query(model).filter_by(**lookup).first()
    if instance:
        return instance, False
    instance = model(**lookup, **(defaults or {}))
    db.session.add(instance)
    db.session.flush()
    return instance, True


def seed_demo_catalog() -> dict:
    """Insert the demo catalog if missing. Returns counts of rows created per model."""
    created = {}

    def track(name, result):
        instance, was_created = result
        created[name] = created.get(name, 0) + int(was_created)
        return instance

    saree = track("categories", _get_or_create(Category, {"id": "CAT-SAREE"}, {"name": "Saree", "slug": "saree"}))
    shawl = track("categories", _get_or_create(Category, {"id": "CAT-SHAWL"}, {"name": "Shawl", "slug": "shawl"}))

    sarees = track(
        "subcategories",
        _get_or_create(Subcategory, {"slug": "sarees"}, {"name": "Sarees", "category_id": saree.id}),
    )
    track(
        "subcategories",
        _get_or_create(Subcategory, {"slug": "stoles"}, {"name": "Stoles", "category_id": shawl.id}),
    )

    track(
        "attribute_definitions",
        _get_or_create(
            AttributeDefinition,
            {"category_id": saree.id, "key": "color"},
            {"name": "Color", "data_type": "string", "required": True, "analytics_enabled": True},
        ),
    )
    track(
        "attribute_definitions",
        _get_or_create(
            AttributeDefinition,
            {"category_id": saree.id, "key": "origin"},
            {"name": "Origin", "data_type": "string", "required": False, "analytics_enabled": True},
        ),
    )

    supplier = track("suppliers", _get_or_create(Supplier, {"code": "SUP-01"}, {"name": "Puneet Textiles"}))

    variant = track(
        "product_variants",
        _get_or_create(
            ProductVariant,
            {"id": "VAR-SAREE-RED"},
            {
                "category_id": saree.id,
                "subcategory_id": sarees.id,
                "attributes": {"color": "Red", "origin": "Banaras"},
                "mrp": 2500,
                "default_selling_price": 2200,
                "max_discount_percent": 20,
            },
        ),
    )

    track(
        "products",
        _get_or_create(
            Product,
            {"sku": "saree-red-ban-0001"},
            {"product_variant_id": variant.id, "supplier_id": supplier.id, "quantity_in_stock": 10},
        ),
    )

    db.session.commit()
    return created


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert demo catalog data (safe to run repeatedly)."""
    created = seed_demo_catalog()
    for name, count in created.items():
        click.echo(f"  {name}: {count} created")
    click.echo("PASS Demo catalog ready")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
