"""
Inventory Ledger: atomic stock debit/credit, goods receipt, and stock queries.

Invariants:
- A stock row is identified by (company_id, shop_id, product_id). A missing
  row is InventoryNotFound; rows are never created implicitly by a sale.
- total_quantity >= 0 after every committed operation.
- debit is a single conditional UPDATE ("decrement if result >= 0"); when it
  matches no row the ledger is unchanged and the caller gets
  InsufficientInventory (or InventoryNotFound).
- Goods receipt recomputes WAC in the same UPDATE that adds the quantity:
    wac' = (qty_on_hand * wac + received * unit_cost) / (qty_on_hand + received)
- debit/credit never commit. They run inside the caller's unit of work, and
  the caller publishes updateInventory after its commit.
- Quantity arithmetic is rounded to the 4-dp storage scale inside each
  statement, so REAL storage (SQLite) cannot leave 0.09999... behind.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, update

from ..errors import InsufficientInventory, InventoryNotFound, ValidationError
from ..extensions import db, publisher
from ..models import InventoryStock, RawMaterialTransaction
from ..notifications import EVENT_UPDATE_INVENTORY
from ..numbers import QUANTITY_SCALE, to_decimal, ZERO
from posledger.time_utils import utcnow
from .activity_service import log_activity
from .concurrency import atomic, lock_for_update, run_with_retry
from .product_service import get_product
from .sequence_service import KIND_GRN, KIND_RAW_MATERIAL, generate_sequence_code


def _key(company_id: str, shop_id: str, product_id: str):
    return (
        InventoryStock.company_id == company_id,
        InventoryStock.shop_id == shop_id,
        InventoryStock.product_id == product_id,
    )


def _positive(quantity, name: str = "quantity") -> Decimal:
    try:
        qty = to_decimal(quantity)
    except (ArithmeticError, TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not qty.is_finite() or qty <= 0:
        raise ValidationError(f"{name} must be greater than zero")
    if qty != qty.quantize(QUANTITY_SCALE):
        raise ValidationError(f"{name} has more than 4 decimal places")
    return qty


def _scaled(expression):
    return func.round(expression, 4)


def find_stock(company_id: str, shop_id: str, product_id: str, *, lock: bool = False) -> InventoryStock | None:
    query = db.session.query(InventoryStock).filter(*_key(company_id, shop_id, product_id))
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_stock(company_id: str, shop_id: str, product_id: str, *, lock: bool = False) -> InventoryStock:
    stock = find_stock(company_id, shop_id, product_id, lock=lock)
    if stock is None:
        raise InventoryNotFound(
            f"Inventory not found for product ID: {product_id}",
            details={"company_id": company_id, "shop_id": shop_id, "product_id": product_id},
        )
    return stock


def _reload(company_id: str, shop_id: str, product_id: str) -> InventoryStock:
    return (
        db.session.query(InventoryStock)
        .filter(*_key(company_id, shop_id, product_id))
        .populate_existing()
        .one()
    )


def debit(company_id: str, shop_id: str, product_id: str, quantity) -> InventoryStock:
    """
    Reduce total_quantity by quantity, refusing to go below zero.

    Raises:
        InventoryNotFound: no stock row for the key
        InsufficientInventory: on hand is less than quantity; nothing changed
    """
    qty = _positive(quantity)
    stmt = (
        update(InventoryStock)
        .where(*_key(company_id, shop_id, product_id), _scaled(InventoryStock.total_quantity - qty) >= 0)
        .values(total_quantity=_scaled(InventoryStock.total_quantity - qty))
        .execution_options(synchronize_session=False)
    )
    if not db.session.execute(stmt).rowcount:
        stock = get_stock(company_id, shop_id, product_id)
        raise InsufficientInventory(
            f"Insufficient inventory for product ID: {product_id}",
            details={
                "product_id": product_id,
                "requested": float(qty),
                "available": float(stock.total_quantity),
            },
        )
    return _reload(company_id, shop_id, product_id)


def credit(company_id: str, shop_id: str, product_id: str, quantity) -> InventoryStock:
    """Increase total_quantity by quantity (cancellations, good returns)."""
    qty = _positive(quantity)
    stmt = (
        update(InventoryStock)
        .where(*_key(company_id, shop_id, product_id))
        .values(total_quantity=_scaled(InventoryStock.total_quantity + qty))
        .execution_options(synchronize_session=False)
    )
    if not db.session.execute(stmt).rowcount:
        get_stock(company_id, shop_id, product_id)
    return _reload(company_id, shop_id, product_id)


def register_stock(
    company_id: str,
    shop_id: str,
    product_id: str,
    *,
    minimum_quantity=ZERO,
    weighted_average_cost=ZERO,
) -> InventoryStock:
    """
    Open an empty stock row for a product in a shop.

    Quantity always starts at zero; stock arrives through goods receipts.
    """
    get_product(company_id, product_id)
    if find_stock(company_id, shop_id, product_id) is not None:
        raise ValidationError(f"Inventory already exists for product ID: {product_id}")

    with atomic():
        stock = InventoryStock(
            company_id=company_id,
            shop_id=shop_id,
            product_id=product_id,
            total_quantity=ZERO,
            weighted_average_cost=to_decimal(weighted_average_cost),
            minimum_quantity=to_decimal(minimum_quantity),
        )
        db.session.add(stock)
    return stock


def receive_goods(
    company_id: str,
    shop_id: str,
    user_id: str,
    product_id: str,
    quantity,
    unit_cost,
    *,
    supplier_id: str | None = None,
    category_id: str | None = None,
    remarks: str | None = None,
    occurred_at=None,
) -> RawMaterialTransaction:
    """
    Record a goods received note: add stock, roll WAC forward, append a GRN row.

    Commits its own unit of work and publishes updateInventory afterwards.
    """
    qty = _positive(quantity)
    cost = to_decimal(unit_cost)
    if cost < 0:
        raise ValidationError("unit_cost cannot be negative")

    def _op():
        with atomic():
            get_stock(company_id, shop_id, product_id, lock=True)

            stmt = (
                update(InventoryStock)
                .where(*_key(company_id, shop_id, product_id))
                .values(
                    weighted_average_cost=_scaled(
                        (InventoryStock.total_quantity * InventoryStock.weighted_average_cost + qty * cost)
                        / (InventoryStock.total_quantity + qty)
                    ),
                    total_quantity=_scaled(InventoryStock.total_quantity + qty),
                )
                .execution_options(synchronize_session=False)
            )
            db.session.execute(stmt)

            tx = RawMaterialTransaction(
                rmt_id=generate_sequence_code(company_id, shop_id, user_id, KIND_RAW_MATERIAL),
                company_id=company_id,
                shop_id=shop_id,
                supplier_id=supplier_id,
                category_id=category_id,
                product_id=product_id,
                transaction_date_time=occurred_at or utcnow(),
                transaction_type="GRN",
                transaction_code=generate_sequence_code(company_id, shop_id, user_id, KIND_GRN),
                raw_mat_in_out="In",
                unit_cost=cost,
                quantity=qty,
                total_cost=qty * cost,
                remarks=remarks,
                created_by=user_id,
                transaction_status="Completed",
            )
            db.session.add(tx)
        return tx

    tx = run_with_retry(_op)
    publisher.publish(EVENT_UPDATE_INVENTORY, get_stock(company_id, shop_id, product_id).to_dict())
    log_activity(company_id, shop_id, user_id, f"Goods received with transaction code: {tx.transaction_code}")
    return tx


def list_stock(company_id: str, shop_id: str, *, needs_restock: bool | None = None) -> list[InventoryStock]:
    rows = (
        db.session.query(InventoryStock)
        .filter_by(company_id=company_id, shop_id=shop_id)
        .order_by(InventoryStock.product_id.asc())
        .all()
    )
    if needs_restock is not None:
        rows = [row for row in rows if row.needs_restock == needs_restock]
    return rows
