# Overview: Service-layer operations for the product catalog; encapsulates business logic and database work.

"""
Products Service

The catalog is flat: no pagination and no server-side filtering, the admin UI
filters locally. SKU is required on create and immutable afterwards.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    NotFoundError,
    UpstreamStoreError,
)

PRODUCT_MUTABLE_FIELDS = {
    "name", "category_name", "description",
    "capital_price", "retail_price", "stock_quantity",
}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS | {"sku"},
    required_on_create={"sku", "name", "category_name"},
    default_on_create={"capital_price": 0, "retail_price": 0, "stock_quantity": 0},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(writable_fields=PRODUCT_MUTABLE_FIELDS)

# Read-only keys a client may echo back on PATCH; dropped without complaint.
IGNORED_ON_UPDATE = {"id", "sku", "created_at", "updated_at"}


def normalize_product_id(raw: str | None) -> str | None:
    """Accept both ?id=<uuid> and the PostgREST-style ?id=eq.<uuid>."""
    if raw is None:
        return None
    value = raw.strip()
    if value.startswith("eq."):
        value = value[3:]
    return value or None


def _normalize_payload(payload: dict | None) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    data = dict(payload)
    # The inventory form has used both names for the category label
    if "category" in data:
        alias = data.pop("category")
        data.setdefault("category_name", alias)
    return data


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products() -> list[dict]:
    """All products ordered by name."""
    try:
        products = db.session.query(Product).order_by(Product.name.asc(), Product.sku.asc()).all()
    except SQLAlchemyError as e:
        raise UpstreamStoreError(str(e)) from e
    return [p.to_dict() for p in products]


def create_product(payload: dict) -> dict:
    """
    Create a product from a client payload.

    Raises:
        ValidationError: bad fields, or the SKU already exists
    """
    data = _normalize_payload(payload)
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    p = Product(sku=patch["sku"])
    apply_product_patch(p, patch)
    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        # The unique index on sku is the source of truth for duplicates
        if db.session.query(Product.id).filter(Product.sku == patch["sku"]).first():
            raise ValidationError(f"SKU {patch['sku']} already exists") from e
        raise ValidationError(str(e.orig)) from e

    current_app.logger.info("Created product sku=%s name=%s", p.sku, p.name)
    return p.to_dict()


def update_product(product_id: str | None, payload: dict) -> dict:
    """
    Partial update. SKU is never changed, even when present in the payload.

    Raises:
        ValidationError: missing id or bad fields
        NotFoundError: no product with this id
    """
    if not product_id:
        raise ValidationError("Missing or invalid id")

    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")

    data = _normalize_payload(payload)
    for key in IGNORED_ON_UPDATE:
        data.pop(key, None)
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    apply_product_patch(p, patch)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ValidationError(str(e.orig)) from e

    current_app.logger.info("Updated product sku=%s fields=%s", p.sku, ", ".join(sorted(patch.keys())))
    return p.to_dict()


def delete_product(product_id: str | None) -> None:
    """
    Hard delete. Past transactions keep their item snapshots.

    Raises:
        ValidationError: missing id
        NotFoundError: no product with this id
    """
    if not product_id:
        raise ValidationError("Missing or invalid id")

    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")

    sku = p.sku
    db.session.delete(p)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise UpstreamStoreError(str(e)) from e

    current_app.logger.info("Deleted product sku=%s", sku)
