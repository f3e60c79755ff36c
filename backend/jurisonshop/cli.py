# Overview: Flask CLI commands for bootstrap, demo data, and inspection.

# backend/jurisonshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask shop init-db
#   Create any missing tables.
# - python -m flask shop reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask shop seed-demo
#   Insert a handful of motorcycle parts; existing SKUs are left alone.
# - python -m flask shop low-stock [--threshold 10]
#   Print products at or below the low-stock threshold.

from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Product

DEMO_PRODUCTS = [
    {"sku": "BRK-PAD-001", "name": "Brake Pad Set (Front)", "category_name": "Brakes",
     "capital_price": Decimal("180.00"), "retail_price": Decimal("320.00"), "stock_quantity": 25},
    {"sku": "CHN-428-120", "name": "Drive Chain 428H x 120L", "category_name": "Drivetrain",
     "capital_price": Decimal("450.00"), "retail_price": Decimal("750.00"), "stock_quantity": 8},
    {"sku": "SPK-NGK-C7", "name": "Spark Plug NGK C7HSA", "category_name": "Electrical",
     "capital_price": Decimal("65.00"), "retail_price": Decimal("120.00"), "stock_quantity": 40},
    {"sku": "OIL-10W40-1L", "name": "Engine Oil 10W-40 (1L)", "category_name": "Fluids",
     "capital_price": Decimal("210.00"), "retail_price": Decimal("295.00"), "stock_quantity": 3},
    {"sku": "TIR-7017-R", "name": "Rear Tire 70/90-17", "category_name": "Tires",
     "capital_price": Decimal("900.00"), "retail_price": Decimal("1350.00"), "stock_quantity": 0},
]


@click.group('shop')
def shop_group():
    """Shop bootstrap and inspection commands."""


@shop_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("Database tables created.")


@shop_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping every table.')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables. Deletes all data."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@shop_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert demo products, skipping SKUs that already exist."""
    created = 0
    for row in DEMO_PRODUCTS:
        if db.session.query(Product.id).filter_by(sku=row["sku"]).first():
            continue
        db.session.add(Product(**row))
        created += 1
    db.session.commit()
    click.echo(f"Seeded {created} product(s).")


@shop_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Defaults to LOW_STOCK_THRESHOLD.')
@with_appcontext
def low_stock(threshold):
    """List products at or below the low-stock threshold."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    products = (
        db.session.query(Product)
        .filter(Product.stock_quantity <= threshold)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )
    if not products:
        click.echo("No low-stock products.")
        return
    for p in products:
        click.echo(f"{p.sku:<16} {p.stock_quantity:>5}  {p.name}")


def register_commands(app):
    app.cli.add_command(shop_group)
