# Overview: Service-layer operations for records; derives activity feeds from current product and sale rows.

"""
Records are a read-only view: there is no change log behind them. Product
activity is inferred from the row as it is now, so an item that was added and
then edited shows only its latest state.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Transaction, TRANSACTION_STATUS_COMPLETED
from ..models.sales import WALK_IN_CUSTOMER
from ..time_utils import format_display
from ..validation import ValidationError, UpstreamStoreError

RECORD_TYPES = ("inventory", "transactions")
RECORD_LIMIT = 50

# A product whose last update lands this close to its creation counts as "Added"
NEW_PRODUCT_WINDOW = timedelta(seconds=10)

RECORD_USER = "System/Admin"


def peso(amount) -> str:
    return f"₱{float(amount or 0):.2f}"


def classify_product(p: Product) -> tuple[str, str]:
    """Return (action, details) for a product's activity row."""
    is_new = (
        p.created_at is not None
        and p.updated_at is not None
        and abs(p.updated_at - p.created_at) < NEW_PRODUCT_WINDOW
    )
    if is_new:
        return "Added", f"New product • {peso(p.retail_price)} retail • Stock: {p.stock_quantity}"
    if p.stock_quantity == 0:
        return "Out of Stock", "Stock reached zero"
    return "Edited", f"Stock updated to {p.stock_quantity} units"


def inventory_records(tz_name: str) -> list[dict]:
    products = (
        db.session.query(Product)
        .order_by(Product.updated_at.desc())
        .limit(RECORD_LIMIT)
        .all()
    )
    records = []
    for p in products:
        action, details = classify_product(p)
        records.append({
            "date": format_display(p.updated_at, tz_name),
            "action": action,
            "item": p.name or "Unnamed Product",
            "user": RECORD_USER,
            "details": details,
        })
    return records


def transaction_records(tz_name: str) -> list[dict]:
    txs = (
        db.session.query(Transaction)
        .order_by(Transaction.created_at.desc())
        .limit(RECORD_LIMIT)
        .all()
    )
    return [
        {
            "date": format_display(tx.created_at, tz_name),
            "id": tx.transaction_number or tx.id[:8].upper(),
            "customer": tx.customer_name or WALK_IN_CUSTOMER,
            "amount": peso(tx.total_amount),
            "status": (tx.status or TRANSACTION_STATUS_COMPLETED).capitalize(),
        }
        for tx in txs
    ]


def get_records(record_type: str | None = "inventory") -> list[dict]:
    """
    Activity feed for the records page.

    Raises:
        ValidationError: record_type is not inventory or transactions
        UpstreamStoreError: the query failed
    """
    record_type = record_type or "inventory"
    if record_type not in RECORD_TYPES:
        raise ValidationError("Invalid type. Use ?type=inventory or ?type=transactions")

    tz_name = current_app.config["SHOP_TIMEZONE"]
    try:
        if record_type == "inventory":
            return inventory_records(tz_name)
        return transaction_records(tz_name)
    except SQLAlchemyError as e:
        raise UpstreamStoreError(str(e)) from e
