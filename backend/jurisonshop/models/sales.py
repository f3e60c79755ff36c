from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .inventory import _new_id, _money

TRANSACTION_STATUS_COMPLETED = "completed"
TRANSACTION_STATUS_REFUNDED = "refunded"

WALK_IN_CUSTOMER = "Walk-in Customer"


class Transaction(db.Model):
    """
    A completed sale with its line items embedded as JSON.

    Items are snapshots ({sku, name, retail_price, quantity}) taken at sale
    time. Status moves once, completed -> refunded.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    # Human-readable number, e.g. "TXN-20261019-4821"
    transaction_number = db.Column(db.String(32), nullable=False, unique=True)

    customer_name = db.Column(db.String(255), nullable=False, default=WALK_IN_CUSTOMER)
    customer_phone = db.Column(db.String(32), nullable=True)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=TRANSACTION_STATUS_COMPLETED, index=True)
    items = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} number={self.transaction_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "payment_method": self.payment_method,
            "total_amount": _money(self.total_amount),
            "status": self.status,
            "items": list(self.items or []),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
