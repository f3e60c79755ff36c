# Overview: Atomic stock adjustment procedures and the best-effort runner used by sales and refunds.

from __future__ import annotations

from typing import Callable, Iterable

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..time_utils import utcnow


class StockAdjustmentError(Exception):
    """Raised when a stock procedure cannot apply its change."""
    def __init__(self, message: str, sku: str | None = None):
        super().__init__(message)
        self.sku = sku


def _check_quantity(sku: str, quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise StockAdjustmentError(f"Quantity must be a positive integer (got {quantity!r})", sku=sku)


def safe_decrement_stock(sku: str, quantity: int) -> int:
    """
    Remove `quantity` units from the product with this SKU.

    Single guarded UPDATE: the row only changes when enough stock is on hand,
    so concurrent sales can never drive stock below zero.

    Returns the number of rows updated (always 1 on success).
    """
    _check_quantity(sku, quantity)
    result = db.session.execute(
        update(Product)
        .where(Product.sku == sku, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        exists = db.session.query(Product.id).filter(Product.sku == sku).first()
        if exists is None:
            raise StockAdjustmentError(f"Unknown SKU {sku}", sku=sku)
        raise StockAdjustmentError(f"Insufficient stock for SKU {sku}", sku=sku)
    db.session.commit()
    return result.rowcount


def safe_increment_stock(sku: str, quantity: int) -> int:
    """Return `quantity` units to the product with this SKU."""
    _check_quantity(sku, quantity)
    result = db.session.execute(
        update(Product)
        .where(Product.sku == sku)
        .values(stock_quantity=Product.stock_quantity + quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise StockAdjustmentError(f"Unknown SKU {sku}", sku=sku)
    db.session.commit()
    return result.rowcount


def apply_best_effort(
    procedure: Callable[[str, int], int],
    items: Iterable[dict],
    *,
    label: str,
) -> list[dict]:
    """
    Run a stock procedure for each line item with quantity > 0, one at a time.

    Failures are logged and collected, never raised: the transaction record
    stays authoritative even when stock drifts.
    """
    failures: list[dict] = []
    for item in items:
        sku = str(item.get("sku") or "").strip()
        try:
            qty = int(item.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if qty <= 0:
            continue

        try:
            procedure(sku, qty)
        except (StockAdjustmentError, SQLAlchemyError) as e:
            db.session.rollback()
            current_app.logger.warning("Failed to %s stock for SKU %s: %s", label, sku, e)
            failures.append({"sku": sku, "quantity": qty, "error": str(e)})

    return failures
