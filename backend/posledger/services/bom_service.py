"""
BOM Resolver and bill-of-materials maintenance.

The order engine only calls resolve(). An empty BOM resolves the same way as
a missing one: selling a BOM-backed product must never record a silent
zero-cost sale.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import BomNotFound, ValidationError
from ..extensions import db
from ..models import BillOfMaterials, BomItem, MAX_BOM_ITEMS
from ..numbers import ZERO
from ..validation import BomItemRequest
from .concurrency import atomic
from .inventory_service import find_stock
from .product_service import get_product
from .sequence_service import COMPANY_SCOPE, KIND_BOM, generate_sequence_code


def find_bom(company_id: str, finished_good_id: str) -> BillOfMaterials | None:
    return (
        db.session.query(BillOfMaterials)
        .filter_by(company_id=company_id, finished_good_id=finished_good_id)
        .first()
    )


def get_bom(company_id: str, finished_good_id: str) -> BillOfMaterials:
    bom = find_bom(company_id, finished_good_id)
    if bom is None:
        raise BomNotFound(
            f"BOM not found for finished good ID: {finished_good_id}",
            details={"finished_good_id": finished_good_id},
        )
    return bom


def resolve(company_id: str, finished_good_id: str) -> BillOfMaterials:
    """Return the BOM for a finished good; BomNotFound when missing or empty."""
    bom = find_bom(company_id, finished_good_id)
    if bom is None or not bom.items:
        raise BomNotFound(
            f"BOM not found or empty for product with ID: {finished_good_id}",
            details={"finished_good_id": finished_good_id},
        )
    return bom


def _build_items(company_id: str, shop_id: str | None, finished_good_id: str,
                 items: list[BomItemRequest]) -> list[BomItem]:
    if not items:
        raise ValidationError("A bill of materials needs at least one item")
    if len(items) > MAX_BOM_ITEMS:
        raise ValidationError(f"A bill of materials can hold at most {MAX_BOM_ITEMS} items")

    rows = []
    for position, item in enumerate(items):
        if item.product_id == finished_good_id:
            raise ValidationError("A finished good cannot be its own raw material")
        get_product(company_id, item.product_id)

        current_wac = item.current_wac
        if current_wac is None:
            stock = find_stock(company_id, shop_id, item.product_id) if shop_id else None
            current_wac = stock.weighted_average_cost if stock is not None else ZERO

        rows.append(BomItem(position=position, product_id=item.product_id, qty=item.qty, current_wac=current_wac))
    return rows


def create_bom(company_id: str, shop_id: str | None, user_id: str, finished_good_id: str,
               items: list[BomItemRequest]) -> BillOfMaterials:
    """
    Create the BOM for a finished good.

    current_wac defaults to the shop's inventory WAC of each raw material.
    """
    get_product(company_id, finished_good_id)
    if find_bom(company_id, finished_good_id) is not None:
        raise ValidationError(f"A BOM already exists for finished good ID: {finished_good_id}")

    try:
        with atomic():
            bom = BillOfMaterials(
                company_id=company_id,
                bom_id=generate_sequence_code(company_id, COMPANY_SCOPE, user_id, KIND_BOM),
                finished_good_id=finished_good_id,
                created_by=user_id,
                items=_build_items(company_id, shop_id, finished_good_id, items),
            )
            db.session.add(bom)
    except IntegrityError:
        raise ValidationError(f"A BOM already exists for finished good ID: {finished_good_id}")
    return bom


def update_bom(company_id: str, shop_id: str | None, user_id: str, finished_good_id: str,
               items: list[BomItemRequest]) -> BillOfMaterials:
    """Replace a BOM's items. Past sales keep their own consumption snapshot."""
    with atomic():
        bom = get_bom(company_id, finished_good_id)
        new_items = _build_items(company_id, shop_id, finished_good_id, items)
        bom.items.clear()
        db.session.flush()
        bom.items.extend(new_items)
    return bom
