from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


def _money(value) -> float:
    return float(value) if value is not None else 0.0


class Product(db.Model):
    """
    A part on the shelf.

    SKU is the business key: unique across the catalog and immutable once the
    product exists. Sale line items point back at products by SKU only, so a
    renamed or repriced product never rewrites sales history.

    stock_quantity never goes below zero. The guarded UPDATEs in
    services/stock_service.py are the only writers that decrement it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_updated_at", "updated_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    category_name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    capital_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    retail_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category_name": self.category_name,
            "description": self.description,
            "capital_price": _money(self.capital_price),
            "retail_price": _money(self.retail_price),
            "stock_quantity": self.stock_quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
