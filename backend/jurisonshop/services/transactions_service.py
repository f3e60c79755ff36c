"""
Transactions Service - sales and refunds

A sale is written first and stock is adjusted afterwards, one item at a time.
Stock adjustments are best effort: a failed decrement is logged and reported
back, never rolled into the sale itself. The transaction row is the record of
what was sold.

LIFECYCLE:
1. create_transaction -> status "completed", stock decremented per item
2. refund_transaction -> stock restored per item, status "refunded" (terminal)

The two steps of a refund are not atomic: if the process dies after stock is
restored, the row stays "completed".
"""

from __future__ import annotations

import random

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Transaction, TRANSACTION_STATUS_COMPLETED, TRANSACTION_STATUS_REFUNDED
from ..models.sales import WALK_IN_CUSTOMER
from ..time_utils import format_display, to_local, utcnow
from ..validation import (
    enforce_rules_transaction,
    ValidationError,
    NotFoundError,
    ConflictError,
    UpstreamStoreError,
)
from . import stock_service

TRANSACTION_NUMBER_ATTEMPTS = 5

PAYMENT_LABELS = {
    "cash": "Cash",
    "gcash": "GCash",
    "card": "Card",
    "bank_transfer": "Bank Transfer",
}


def generate_transaction_number(now=None, tz_name: str | None = None) -> str:
    """TXN-<YYYYMMDD>-<4 random digits>, dated in the shop's timezone."""
    tz_name = tz_name or current_app.config["SHOP_TIMEZONE"]
    local = to_local(now or utcnow(), tz_name)
    return f"TXN-{local:%Y%m%d}-{random.randint(1000, 9999)}"


def _clean_optional(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def create_transaction(payload: dict | None) -> dict:
    """
    Record a sale and decrement stock for each of its items.

    Raises:
        ValidationError: bad total, empty items, unknown payment method
        UpstreamStoreError: the insert failed
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    total_amount, items = enforce_rules_transaction(payload)

    customer_name = _clean_optional(payload.get("customer_name")) or WALK_IN_CUSTOMER
    tx = None
    for _ in range(TRANSACTION_NUMBER_ATTEMPTS):
        number = generate_transaction_number()
        tx = Transaction(
            transaction_number=number,
            customer_name=customer_name,
            customer_phone=_clean_optional(payload.get("customer_phone")),
            payment_method=payload.get("payment_method") or "cash",
            total_amount=total_amount,
            items=items,
            status=TRANSACTION_STATUS_COMPLETED,
            notes=_clean_optional(payload.get("notes")),
        )
        db.session.add(tx)
        try:
            db.session.commit()
            break
        except IntegrityError as e:
            db.session.rollback()
            taken = db.session.query(Transaction.id).filter_by(transaction_number=number).first()
            if taken is None:
                current_app.logger.error("Transaction insert error: %s", e)
                raise UpstreamStoreError(str(e.orig)) from e
            current_app.logger.info("Transaction number %s already taken, regenerating", number)
            tx = None
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error("Transaction insert error: %s", e)
            raise UpstreamStoreError(str(e)) from e

    if tx is None:
        raise UpstreamStoreError("Could not allocate a unique transaction number")

    failures = stock_service.apply_best_effort(
        stock_service.safe_decrement_stock, items, label="deduct"
    )

    current_app.logger.info(
        "Created transaction %s total=%s items=%d stock_failures=%d",
        tx.transaction_number, total_amount, len(items), len(failures),
    )

    data = tx.to_dict()
    data["stock_failures"] = failures
    return data


def present_transaction(tx: Transaction, tz_name: str) -> dict:
    """Display fields for the transactions table; computed on read, never stored."""
    status = tx.status or TRANSACTION_STATUS_COMPLETED
    method = tx.payment_method or "cash"
    return {
        "id": tx.transaction_number or tx.id,
        "transaction_id": tx.id,
        "transaction_number": tx.transaction_number,
        "date": format_display(tx.created_at, tz_name),
        "customer": tx.customer_name or WALK_IN_CUSTOMER,
        "customer_phone": tx.customer_phone,
        "payment": PAYMENT_LABELS.get(method, method.replace("_", " ").title()),
        "total": f"{float(tx.total_amount or 0):.2f}",
        "status": status.capitalize(),
        "notes": tx.notes,
        "items": list(tx.items or []),
    }


def list_transactions() -> list[dict]:
    """All transactions, newest first."""
    tz_name = current_app.config["SHOP_TIMEZONE"]
    try:
        rows = (
            db.session.query(Transaction)
            .order_by(Transaction.created_at.desc(), Transaction.transaction_number.desc())
            .all()
        )
    except SQLAlchemyError as e:
        raise UpstreamStoreError(str(e)) from e
    return [present_transaction(tx, tz_name) for tx in rows]


def get_transaction(ref: str) -> Transaction:
    """Look a transaction up by row id or by its TXN number."""
    ref = (ref or "").strip()
    if not ref:
        raise ValidationError("Missing transaction id")
    tx = (
        db.session.query(Transaction)
        .filter(or_(Transaction.id == ref, Transaction.transaction_number == ref))
        .first()
    )
    if tx is None:
        raise NotFoundError("Transaction not found")
    return tx


def refund_transaction(ref: str) -> dict:
    """
    Refund a completed transaction and put its items back on the shelf.

    Raises:
        NotFoundError: unknown id / number
        ConflictError: already refunded
    """
    tx = get_transaction(ref)

    if tx.status == TRANSACTION_STATUS_REFUNDED:
        raise ConflictError("Transaction already refunded")

    number = tx.transaction_number
    failures = stock_service.apply_best_effort(
        stock_service.safe_increment_stock, tx.items or [], label="restore"
    )

    # Re-read: the stock procedures commit and expire the session
    tx = get_transaction(number)
    tx.status = TRANSACTION_STATUS_REFUNDED
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise UpstreamStoreError(str(e)) from e

    current_app.logger.info("Refunded transaction %s stock_failures=%d", number, len(failures))
    return {
        "transaction": tx.to_dict(),
        "stock_failures": failures,
    }
