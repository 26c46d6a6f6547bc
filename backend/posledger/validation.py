# Overview: Request payload parsing for orders, returns, BOMs, and goods receipts.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .models import MAX_BOM_ITEMS
from .models.transactions import RETURN_CONDITIONS
from .numbers import QUANTITY_SCALE, to_decimal, ZERO


@dataclass(frozen=True)
class OrderItemRequest:
    product_id: str
    quantity: Decimal
    selling_price: Decimal = ZERO
    discount_amount: Decimal = ZERO


@dataclass(frozen=True)
class OrderRequest:
    items: list[OrderItemRequest]
    invoice_id: str | None = None
    bill_total: Decimal = ZERO
    cash_amount: Decimal = ZERO
    card_amount: Decimal = ZERO
    card_digits: str | None = None
    wallet_in: Decimal = ZERO
    wallet_out: Decimal = ZERO
    other_payment: Decimal = ZERO
    loyalty_points: Decimal = ZERO
    customer_id: str | None = None
    selling_type: str | None = None
    selling_type_id: str | None = None
    selling_type_charge: Decimal | None = None
    selling_type_amount: Decimal | None = None


@dataclass(frozen=True)
class ReturnItemRequest:
    product_id: str
    quantity: Decimal
    condition: str


@dataclass(frozen=True)
class BomItemRequest:
    product_id: str
    qty: Decimal
    current_wac: Decimal | None = None


@dataclass(frozen=True)
class GoodsReceiptRequest:
    product_id: str
    quantity: Decimal
    unit_cost: Decimal
    supplier_id: str | None = None
    category_id: str | None = None
    remarks: str | None = None


def parse_decimal(value: Any, name: str, *, required: bool = False, positive: bool = False,
                  non_negative: bool = False, scaled: bool = False,
                  default: Decimal | None = ZERO) -> Decimal | None:
    """
    Coerce a JSON number or numeric string to Decimal.

    Rejects booleans, NaN and infinities. With scaled=True (quantities) it also
    rejects values finer than the 4-dp storage scale.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{name} is required")
        return default
    try:
        number = to_decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    if positive and number <= 0:
        raise ValidationError(f"{name} must be greater than zero")
    if non_negative and number < 0:
        raise ValidationError(f"{name} cannot be negative")
    if scaled and number != number.quantize(QUANTITY_SCALE):
        raise ValidationError(f"{name} has more than 4 decimal places")
    return number


def parse_identifier(value: Any, name: str, *, required: bool = True) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a string")
    return str(value).strip()


def _require_mapping(data: Any, name: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError(f"{name} must be an object")
    return data


def _require_list(data: Any, name: str) -> list:
    if not isinstance(data, list) or not data:
        raise ValidationError(f"{name} must be a non-empty list")
    return data


def parse_order_payload(data: Any) -> OrderRequest:
    """Validate an order body: {"items": [{"product_id", "quantity", ...}], tenders...}."""
    data = _require_mapping(data, "order")
    raw_items = _require_list(data.get("items"), "items")

    items = []
    for index, raw in enumerate(raw_items):
        raw = _require_mapping(raw, f"items[{index}]")
        items.append(OrderItemRequest(
            product_id=parse_identifier(raw.get("product_id"), f"items[{index}].product_id"),
            quantity=parse_decimal(raw.get("quantity"), f"items[{index}].quantity", required=True,
                                   positive=True, scaled=True),
            selling_price=parse_decimal(raw.get("selling_price"), f"items[{index}].selling_price", non_negative=True),
            discount_amount=parse_decimal(raw.get("discount_amount"), f"items[{index}].discount_amount", non_negative=True),
        ))

    return OrderRequest(
        items=items,
        invoice_id=parse_identifier(data.get("invoice_id"), "invoice_id", required=False),
        bill_total=parse_decimal(data.get("bill_total"), "bill_total", non_negative=True),
        cash_amount=parse_decimal(data.get("cash_amount"), "cash_amount", non_negative=True),
        card_amount=parse_decimal(data.get("card_amount"), "card_amount", non_negative=True),
        card_digits=parse_identifier(data.get("card_digits"), "card_digits", required=False),
        wallet_in=parse_decimal(data.get("wallet_in"), "wallet_in", non_negative=True),
        wallet_out=parse_decimal(data.get("wallet_out"), "wallet_out", non_negative=True),
        other_payment=parse_decimal(data.get("other_payment"), "other_payment", non_negative=True),
        loyalty_points=parse_decimal(data.get("loyalty_points"), "loyalty_points", non_negative=True),
        customer_id=parse_identifier(data.get("customer_id"), "customer_id", required=False),
        selling_type=parse_identifier(data.get("selling_type"), "selling_type", required=False),
        selling_type_id=parse_identifier(data.get("selling_type_id"), "selling_type_id", required=False),
        selling_type_charge=parse_decimal(data.get("selling_type_charge"), "selling_type_charge", default=None),
        selling_type_amount=parse_decimal(data.get("selling_type_amount"), "selling_type_amount", default=None),
    )


def parse_return_items(data: Any) -> list[ReturnItemRequest]:
    """Validate [{"product_id", "quantity", "condition"}]; condition is Good, Damaged or Expired."""
    raw_items = _require_list(data, "items")
    items = []
    for index, raw in enumerate(raw_items):
        raw = _require_mapping(raw, f"items[{index}]")
        condition = raw.get("condition")
        if condition not in RETURN_CONDITIONS:
            raise ValidationError(
                f"items[{index}].condition must be one of {', '.join(RETURN_CONDITIONS)}"
            )
        items.append(ReturnItemRequest(
            product_id=parse_identifier(raw.get("product_id"), f"items[{index}].product_id"),
            quantity=parse_decimal(raw.get("quantity"), f"items[{index}].quantity", required=True,
                                   positive=True, scaled=True),
            condition=condition,
        ))
    return items


def parse_bom_items(data: Any) -> list[BomItemRequest]:
    raw_items = _require_list(data, "items")
    if len(raw_items) > MAX_BOM_ITEMS:
        raise ValidationError(f"A bill of materials can hold at most {MAX_BOM_ITEMS} items")
    items = []
    for index, raw in enumerate(raw_items):
        raw = _require_mapping(raw, f"items[{index}]")
        items.append(BomItemRequest(
            product_id=parse_identifier(raw.get("product_id"), f"items[{index}].product_id"),
            qty=parse_decimal(raw.get("qty"), f"items[{index}].qty", required=True, positive=True, scaled=True),
            current_wac=parse_decimal(raw.get("current_wac"), f"items[{index}].current_wac", non_negative=True, default=None),
        ))
    return items


def parse_goods_receipt(data: Any) -> GoodsReceiptRequest:
    data = _require_mapping(data, "goods receipt")
    return GoodsReceiptRequest(
        product_id=parse_identifier(data.get("product_id"), "product_id"),
        quantity=parse_decimal(data.get("quantity"), "quantity", required=True, positive=True, scaled=True),
        unit_cost=parse_decimal(data.get("unit_cost"), "unit_cost", required=True, non_negative=True),
        supplier_id=parse_identifier(data.get("supplier_id"), "supplier_id", required=False),
        category_id=parse_identifier(data.get("category_id"), "category_id", required=False),
        remarks=parse_identifier(data.get("remarks"), "remarks", required=False),
    )
