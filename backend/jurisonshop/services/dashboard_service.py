# Overview: Service-layer operations for the dashboard; in-memory aggregation over sales and products.

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..models import Product, Transaction, TRANSACTION_STATUS_COMPLETED
from ..time_utils import days_in_month, to_local, utcnow

TOP_SOLD_LIMIT = 5
NO_SALES_PLACEHOLDER = {"name": "No sales yet", "quantity": 0}

_CENT = Decimal("0.01")


def _round2(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return Decimal(0)


def _item_quantity(item: dict) -> int:
    """Quantity of a line item; missing or zero counts as one unit."""
    try:
        qty = int(item.get("quantity") or 0)
    except (TypeError, ValueError):
        qty = 0
    return qty or 1


def _item_sku(item) -> str | None:
    if not isinstance(item, dict):
        return None
    sku = item.get("sku")
    if sku is None:
        return None
    sku = str(sku).strip()
    return sku or None


def _transaction_capital(tx: dict, capital_by_sku: dict[str, Decimal]) -> Decimal:
    cost = Decimal(0)
    for item in tx.get("items") or []:
        sku = _item_sku(item)
        if not sku:
            continue
        cost += capital_by_sku.get(sku, Decimal(0)) * _item_quantity(item)
    return cost


def empty_dashboard(now: datetime | None = None, tz_name: str = "UTC") -> dict:
    """The zero-filled payload served when the real numbers cannot be computed."""
    local_now = to_local(now or utcnow(), tz_name)
    return {
        "totalCapitalRevenue": 0,
        "totalRetailRevenue": 0,
        "totalGrossProfit": 0,
        "totalParts": 0,
        "lowStockCount": 0,
        "lowStockItems": [],
        "topSoldParts": [dict(NO_SALES_PLACEHOLDER)],
        "currentMonthDailyProfits": [0] * days_in_month(local_now.year, local_now.month),
    }


def compute_dashboard(
    transactions: Iterable[dict],
    products: Iterable[dict],
    *,
    now: datetime | None = None,
    tz_name: str = "UTC",
    low_stock_threshold: int = 10,
) -> dict:
    """
    Aggregate dashboard metrics from completed transactions and the catalog.

    transactions: dicts with total_amount, created_at (datetime), items
    products: dicts with sku, name, capital_price, stock_quantity

    Accumulation is exact (Decimal); values are rounded to cents only here,
    at the output.
    """
    txs = list(transactions)
    catalog = list(products)

    capital_by_sku: dict[str, Decimal] = {}
    name_by_sku: dict[str, str] = {}
    for p in catalog:
        sku = str(p.get("sku") or "").strip()
        if not sku:
            continue
        capital_by_sku[sku] = _to_decimal(p.get("capital_price"))
        name_by_sku[sku] = p.get("name")

    local_now = to_local(now or utcnow(), tz_name)
    daily = [Decimal(0)] * days_in_month(local_now.year, local_now.month)

    retail_total = Decimal(0)
    capital_total = Decimal(0)
    sold_by_sku: dict[str, int] = defaultdict(int)

    for tx in txs:
        retail = _to_decimal(tx.get("total_amount"))
        capital = _transaction_capital(tx, capital_by_sku)
        retail_total += retail
        capital_total += capital

        for item in tx.get("items") or []:
            sku = _item_sku(item)
            if sku:
                sold_by_sku[sku] += _item_quantity(item)

        created_at = tx.get("created_at")
        if created_at is None:
            continue
        local_created = to_local(created_at, tz_name)
        if local_created.year == local_now.year and local_created.month == local_now.month:
            daily[local_created.day - 1] += retail - capital

    low_stock = sorted(
        (
            {"name": p.get("name") or "Unnamed Product", "stock": int(p.get("stock_quantity") or 0)}
            for p in catalog
            if int(p.get("stock_quantity") or 0) <= low_stock_threshold
        ),
        key=lambda row: row["stock"],
    )

    # Ties keep first-sold order
    top = sorted(sold_by_sku.items(), key=lambda kv: kv[1], reverse=True)[:TOP_SOLD_LIMIT]
    top_sold = [
        {"name": name_by_sku.get(sku) or f"Unknown ({sku})", "quantity": qty}
        for sku, qty in top
    ]

    return {
        "totalCapitalRevenue": _round2(capital_total),
        "totalRetailRevenue": _round2(retail_total),
        "totalGrossProfit": _round2(retail_total - capital_total),
        "totalParts": len(catalog),
        "lowStockCount": len(low_stock),
        "lowStockItems": low_stock,
        "topSoldParts": top_sold or [dict(NO_SALES_PLACEHOLDER)],
        "currentMonthDailyProfits": [_round2(v) for v in daily],
    }


def _load_inputs() -> tuple[list[dict], list[dict]]:
    txs = (
        db.session.query(Transaction.total_amount, Transaction.created_at, Transaction.items)
        .filter(Transaction.status == TRANSACTION_STATUS_COMPLETED)
        .order_by(Transaction.created_at.asc())
        .all()
    )
    products = (
        db.session.query(Product.sku, Product.name, Product.capital_price, Product.stock_quantity)
        .all()
    )
    return [row._asdict() for row in txs], [row._asdict() for row in products]


def get_dashboard(now: datetime | None = None) -> tuple[dict, bool]:
    """
    Dashboard payload for the admin UI.

    Never raises: on any failure the error is logged and a zero-filled payload
    is returned with degraded=True.
    """
    tz_name = current_app.config["SHOP_TIMEZONE"]
    try:
        transactions, products = _load_inputs()
        data = compute_dashboard(
            transactions,
            products,
            now=now,
            tz_name=tz_name,
            low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
        )
        return data, False
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Dashboard aggregation failed; serving zeroed payload")
        return empty_dashboard(now, tz_name), True
