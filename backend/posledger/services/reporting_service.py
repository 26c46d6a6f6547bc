# Overview: Read-only sales, profit and inventory movement reports over transaction history.

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import FinishedGoodTransaction, InventoryStock, Product, RawMaterialTransaction
from ..models.transactions import STATUS_CANCELLED, STATUS_COMPLETED, TRANSACTION_TYPE_SALES
from ..numbers import as_number, ZERO
from posledger.time_utils import parse_report_range, to_utc_z


class ReportError(ValidationError):
    """Raised for report range errors."""


def _resolve_range(start, end) -> tuple[datetime, datetime]:
    if isinstance(start, datetime) and isinstance(end, datetime):
        if end <= start:
            raise ReportError("end must be after start")
        return start, end
    try:
        return parse_report_range(start, end)
    except ValueError as exc:
        raise ReportError(str(exc), details={"start": start, "end": end})


def _completed_sales(company_id: str, shop_id: str):
    return (
        db.session.query(FinishedGoodTransaction)
        .filter(
            FinishedGoodTransaction.company_id == company_id,
            FinishedGoodTransaction.shop_id == shop_id,
            FinishedGoodTransaction.transaction_type == TRANSACTION_TYPE_SALES,
            FinishedGoodTransaction.transaction_status == STATUS_COMPLETED,
        )
    )


def _completed_sales_between(company_id: str, shop_id: str, start_dt: datetime, end_dt: datetime):
    return (
        _completed_sales(company_id, shop_id)
        .filter(
            FinishedGoodTransaction.transaction_date_time >= start_dt,
            FinishedGoodTransaction.transaction_date_time < end_dt,
        )
        .order_by(FinishedGoodTransaction.transaction_date_time.asc(), FinishedGoodTransaction.id.asc())
        .all()
    )


def sales_report(company_id: str, shop_id: str, start, end) -> dict:
    """
    Sales, cost and profit of Completed sale lines in [start, end).

    cost is what the line consumed at sale-time WAC; profit = sale - cost - discount.
    total_cost keeps discounts in (cost + discount); total_product_cost does not.
    """
    start_dt, end_dt = _resolve_range(start, end)

    lines = _completed_sales_between(company_id, shop_id, start_dt, end_dt)

    totals = {
        "total_sales": ZERO,
        "total_product_cost": ZERO,
        "total_cost": ZERO,
        "total_profit": ZERO,
        "total_discounts": ZERO,
    }
    per_product: dict[str, dict] = {}

    for line in lines:
        quantity = line.finishedgood_qty
        sale = line.selling_price * quantity
        cost = sum((detail.current_wac * detail.quantity for detail in line.used_product_details), ZERO)
        discount = line.discount_amount or ZERO
        profit = sale - cost - discount

        totals["total_sales"] += sale
        totals["total_product_cost"] += cost
        totals["total_cost"] += cost + discount
        totals["total_profit"] += profit
        totals["total_discounts"] += discount

        row = per_product.setdefault(line.finishedgood_id, {
            "finished_good_id": line.finishedgood_id,
            "finishedgood_qty": ZERO,
            "sale": ZERO,
            "cost": ZERO,
            "profit": ZERO,
            "unit_price": line.selling_price,
        })
        row["finishedgood_qty"] += quantity
        row["sale"] += sale
        row["cost"] += cost
        row["profit"] += profit

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        **{key: as_number(value) for key, value in totals.items()},
        "sales_details": [
            {key: (as_number(value) if isinstance(value, Decimal) else value) for key, value in row.items()}
            for row in per_product.values()
        ],
    }


def sales_and_profit(company_id: str, shop_id: str, start, end) -> dict:
    """
    Per-line sales and profit listing of Completed sale lines in [start, end).

    Cost comes from the sale-time consumption snapshot, never the current WAC,
    so a later goods receipt does not rewrite past profit. Discounts are per
    line, as in sales_report: total_price = selling_price * quantity - discount.
    """
    start_dt, end_dt = _resolve_range(start, end)

    lines = _completed_sales_between(company_id, shop_id, start_dt, end_dt)
    raw_material_flags = dict(
        db.session.query(Product.product_id, Product.has_raw_materials)
        .filter(Product.company_id == company_id)
        .all()
    )

    transactions = []
    for line in lines:
        quantity = line.finishedgood_qty
        discount = line.discount_amount or ZERO
        total_price = line.selling_price * quantity - discount
        cost = sum((detail.current_wac * detail.quantity for detail in line.used_product_details), ZERO)
        transactions.append({
            "company_id": line.company_id,
            "shop_id": line.shop_id,
            "finishedgood_id": line.finishedgood_id,
            "selling_type": line.selling_type,
            "order_no": line.order_no,
            "customer_id": line.customer_id,
            "quantity": as_number(quantity),
            "discount_amount": as_number(discount),
            "selling_price": as_number(line.selling_price),
            "total_price": as_number(total_price),
            "cost": as_number(cost),
            "profit": as_number(total_price - cost),
            "transaction_date_time": to_utc_z(line.transaction_date_time),
            "transaction_code": line.transaction_code,
            "has_raw_materials": bool(raw_material_flags.get(line.finishedgood_id, False)),
        })

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "transactions": transactions,
    }


def _bucket_of(occurred_at: datetime, start_dt: datetime, end_dt: datetime) -> str | None:
    if occurred_at < start_dt:
        return "before"
    if occurred_at < end_dt:
        return "period"
    return None


def inventory_movement_report(company_id: str, shop_id: str, start, end) -> dict:
    """
    Beginning inventory, purchases, sales and ending inventory per stocked product.

    Purchases are non-cancelled GRN/In raw material transactions. Direct sales
    are Completed sale lines of the product itself; indirect sales are the
    product's consumption inside other products' sale lines. Beginning and
    ending inventory are clamped at zero.
    """
    start_dt, end_dt = _resolve_range(start, end)

    stocks = (
        db.session.query(InventoryStock)
        .filter_by(company_id=company_id, shop_id=shop_id)
        .all()
    )
    products = {
        product.product_id: product
        for product in db.session.query(Product).filter_by(company_id=company_id).all()
    }
    tracked = {stock.product_id for stock in stocks}

    movements: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))

    receipts = (
        db.session.query(RawMaterialTransaction)
        .filter(
            RawMaterialTransaction.company_id == company_id,
            RawMaterialTransaction.shop_id == shop_id,
            RawMaterialTransaction.transaction_type == "GRN",
            RawMaterialTransaction.raw_mat_in_out == "In",
            RawMaterialTransaction.transaction_status != STATUS_CANCELLED,
            RawMaterialTransaction.transaction_date_time < end_dt,
        )
        .all()
    )
    for receipt in receipts:
        if receipt.product_id not in tracked:
            continue
        bucket = _bucket_of(receipt.transaction_date_time, start_dt, end_dt)
        if bucket:
            movements[receipt.product_id][f"{bucket}_purchases"] += receipt.quantity

    lines = (
        _completed_sales(company_id, shop_id)
        .filter(
            FinishedGoodTransaction.transaction_in_out == "Out",
            FinishedGoodTransaction.transaction_date_time < end_dt,
        )
        .all()
    )
    for line in lines:
        bucket = _bucket_of(line.transaction_date_time, start_dt, end_dt)
        if not bucket:
            continue
        if line.finishedgood_id in tracked:
            movements[line.finishedgood_id][f"{bucket}_direct_sales"] += line.finishedgood_qty
        for detail in line.used_product_details:
            # A stocked product sold directly carries itself as its only detail
            if detail.product_id == line.finishedgood_id or detail.product_id not in tracked:
                continue
            movements[detail.product_id][f"{bucket}_indirect_sales"] += detail.quantity

    report_data = []
    for stock in stocks:
        product = products.get(stock.product_id)
        if product is None:
            continue
        moved = movements[stock.product_id]

        beginning = max(
            ZERO,
            moved["before_purchases"] - moved["before_direct_sales"] - moved["before_indirect_sales"],
        )
        ending = max(
            ZERO,
            beginning + moved["period_purchases"] - moved["period_direct_sales"] - moved["period_indirect_sales"],
        )
        total_sales = moved["period_direct_sales"] + moved["period_indirect_sales"]

        report_data.append({
            "product_id": stock.product_id,
            "product_name": product.name,
            "plu_code": product.plu_code,
            "category_id": product.category_id,
            "beginning_inventory": beginning,
            "purchases": moved["period_purchases"],
            "direct_sales": moved["period_direct_sales"],
            "indirect_sales": moved["period_indirect_sales"],
            "total_sales": total_sales,
            "ending_inventory": ending,
            "current_inventory": stock.total_quantity,
            "minimum_quantity": stock.minimum_quantity,
            "needs_restock": stock.needs_restock,
        })

    report_data.sort(key=lambda row: row["total_sales"], reverse=True)

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "report_data": [
            {key: (as_number(value) if isinstance(value, Decimal) else value) for key, value in row.items()}
            for row in report_data
        ],
    }
