# Overview: Product lookup and registration for the order engine and back office.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ProductNotFound, ValidationError
from ..extensions import db
from ..models import Product
from .concurrency import atomic
from .sequence_service import COMPANY_SCOPE, KIND_PRODUCT, generate_sequence_code
from ..validation import parse_decimal, parse_identifier


def find_product(company_id: str, product_id: str) -> Product | None:
    return db.session.query(Product).filter_by(company_id=company_id, product_id=product_id).first()


def get_product(company_id: str, product_id: str) -> Product:
    product = find_product(company_id, product_id)
    if product is None:
        raise ProductNotFound(f"Product not found for product ID: {product_id}", details={"product_id": product_id})
    return product


def list_products(company_id: str, *, active_only: bool = False) -> list[Product]:
    query = db.session.query(Product).filter_by(company_id=company_id)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.id.asc()).all()


def create_product(company_id: str, user_id: str | None, data: dict) -> Product:
    """
    Register a product and assign its ProductID-n code.

    Required: plu_code, name. Flags requires_grn / has_raw_materials default
    to False.
    """
    if not isinstance(data, dict):
        raise ValidationError("product must be an object")

    plu_code = parse_identifier(data.get("plu_code"), "plu_code")
    name = parse_identifier(data.get("name"), "name")
    for flag in ("requires_grn", "has_raw_materials"):
        if flag in data and not isinstance(data[flag], bool):
            raise ValidationError(f"{flag} must be a boolean")

    try:
        with atomic():
            product = Product(
                company_id=company_id,
                product_id=generate_sequence_code(company_id, COMPANY_SCOPE, user_id, KIND_PRODUCT),
                plu_code=plu_code,
                name=name,
                product_type=parse_identifier(data.get("product_type"), "product_type", required=False) or "Finished Good",
                category_id=parse_identifier(data.get("category_id"), "category_id", required=False),
                uom_id=parse_identifier(data.get("uom_id"), "uom_id", required=False),
                min_qty=parse_decimal(data.get("min_qty"), "min_qty", non_negative=True),
                requires_grn=bool(data.get("requires_grn", False)),
                has_raw_materials=bool(data.get("has_raw_materials", False)),
                created_by=user_id,
            )
            db.session.add(product)
    except IntegrityError:
        raise ValidationError(f"PLU code {plu_code} is already in use")

    return product
