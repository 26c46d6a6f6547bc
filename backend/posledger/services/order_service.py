# Overview: Order Lifecycle Engine; create, cancel, and partial return of sales orders.

"""
Order Lifecycle Engine.

Invariants (authoritative):
- create_order, cancel_order and return_order_items are each ONE unit of
  work: every inventory debit/credit and every record written commits
  together or not at all.
- Reversals (cancel, Good returns) use the usedProductDetails snapshot
  captured at sale time, never the current BOM.
- A payment moves Completed -> Cancelled only through a conditional UPDATE,
  so a second cancel fails instead of crediting stock twice.
- Events and the activity log are emitted only after commit. Their failure
  never undoes the order change.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import InvalidOrderState, InvalidQuantity, TransactionNotFound, ValidationError
from ..extensions import publisher
from ..models import FinishedGoodTransaction, PaymentTransaction, Product
from ..models.transactions import (
    CONDITION_DAMAGED,
    CONDITION_EXPIRED,
    CONDITION_GOOD,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PARTIALLY_RETURNED,
    STATUS_RETURNED,
)
from ..notifications import (
    EVENT_CANCEL_FINISHED_GOODS,
    EVENT_CANCEL_ORDER,
    EVENT_ORDER_RETURNED,
    EVENT_UPDATE_INVENTORY,
)
from ..numbers import as_number, quantize, ZERO
from ..validation import OrderRequest, ReturnItemRequest, parse_order_payload, parse_return_items
from .activity_service import log_activity, update_daily_balance
from .bom_service import resolve
from .concurrency import atomic, run_with_retry
from .inventory_service import credit, debit, find_stock
from .product_service import get_product
from .sequence_service import KIND_SALES, generate_sequence_code
from . import transaction_service
from .transaction_service import UsageLine

# Payment statuses that still accept returns
RETURNABLE_PAYMENT_STATUSES = (STATUS_COMPLETED, STATUS_PARTIALLY_RETURNED, STATUS_RETURNED)


class _TouchedStock:
    """Ordered set of stock keys changed in one unit of work."""

    def __init__(self) -> None:
        self._product_ids: list[str] = []

    def add(self, product_id: str) -> None:
        if product_id not in self._product_ids:
            self._product_ids.append(product_id)

    def events(self, company_id: str, shop_id: str) -> list[tuple[str, dict]]:
        events = []
        for product_id in self._product_ids:
            stock = find_stock(company_id, shop_id, product_id)
            if stock is not None:
                events.append((EVENT_UPDATE_INVENTORY, stock.to_dict()))
        return events


def _consume(company_id: str, shop_id: str, product: Product, quantity: Decimal,
             touched: _TouchedStock) -> list[UsageLine]:
    """Debit the inventory one sold line uses and return the consumption snapshot."""
    usage: list[UsageLine] = []
    if quantity != quantize(quantity):
        raise ValidationError(
            f"Quantity for product ID {product.product_id} has more than 4 decimal places",
            details={"product_id": product.product_id, "quantity": str(quantity)},
        )

    tracking = product.stock_tracking
    if tracking == "BOM":
        bom = resolve(company_id, product.product_id)
        for entry in bom.items:
            if entry.qty <= 0:
                continue
            required = quantize(entry.qty * quantity)
            if required <= 0:
                raise ValidationError(
                    f"Quantity for product ID {product.product_id} is too small to consume {entry.product_id}",
                    details={"product_id": product.product_id, "raw_material_id": entry.product_id,
                             "quantity": str(quantity)},
                )
            stock = debit(company_id, shop_id, entry.product_id, required)
            usage.append(UsageLine(entry.product_id, required, stock.weighted_average_cost))
            touched.add(entry.product_id)
    elif tracking == "DIRECT":
        quantity = quantize(quantity)
        stock = debit(company_id, shop_id, product.product_id, quantity)
        usage.append(UsageLine(product.product_id, quantity, stock.weighted_average_cost))
        touched.add(product.product_id)

    return usage


def _order_to_dict(payment: PaymentTransaction, lines: list[FinishedGoodTransaction]) -> dict:
    payload = payment.to_dict()
    payload["finished_goods"] = [
        {
            "ft_id": line.ft_id,
            "finishedgood_id": line.finishedgood_id,
            "used_product_details": [detail.to_dict() for detail in line.used_product_details],
            "finishedgood_qty": as_number(line.finishedgood_qty),
            "sold_qty": as_number(line.sold_qty),
            "selling_price": as_number(line.selling_price),
            "discount_amount": as_number(line.discount_amount),
            "transaction_status": line.transaction_status,
        }
        for line in lines
    ]
    return payload


def create_order(company_id: str, shop_id: str, user_id: str, order) -> str:
    """
    Record a sale: one payment transaction, one finished-good transaction per
    line, inventory debits for BOM-backed and GRN-backed products, and the
    daily balance update.

    Returns the transaction code shared by all records of the order.

    Raises:
        ProductNotFound, BomNotFound, InventoryNotFound, InsufficientInventory,
        ValidationError. Nothing is persisted when any of them is raised.
    """
    if not isinstance(order, OrderRequest):
        order = parse_order_payload(order)
    if not order.items:
        raise ValidationError("An order needs at least one item")

    def _op():
        touched = _TouchedStock()
        with atomic():
            transaction_code = generate_sequence_code(company_id, shop_id, user_id, KIND_SALES)
            payment = transaction_service.create_payment_transaction(
                company_id, shop_id, user_id, transaction_code, order
            )
            occurred_at = payment.transaction_date_time

            for item in order.items:
                product = get_product(company_id, item.product_id)
                usage = _consume(company_id, shop_id, product, item.quantity, touched)
                transaction_service.create_finished_good_transaction(
                    company_id, shop_id, user_id, transaction_code, order, item, usage,
                    occurred_at=occurred_at,
                )

            update_daily_balance(
                company_id,
                shop_id,
                user_id,
                order.bill_total,
                remarks=f"Order processed with transaction code: {transaction_code}",
            )
        return transaction_code, touched

    transaction_code, touched = run_with_retry(_op)

    publisher.publish_all(touched.events(company_id, shop_id))
    log_activity(company_id, shop_id, user_id, f"Order processed with transaction code: {transaction_code}")
    current_app.logger.info(
        "Order %s created for %s/%s with %d line(s)",
        transaction_code, company_id, shop_id, len(order.items),
    )
    return transaction_code


def cancel_order(company_id: str, shop_id: str, user_id: str, transaction_code: str) -> dict:
    """
    Cancel a Completed order and put back everything its lines consumed.

    Raises:
        TransactionNotFound: no payment or no lines for the code
        InvalidOrderState: the order is not Completed (already cancelled or returned)
    """

    def _op():
        touched = _TouchedStock()
        with atomic():
            payment, lines = transaction_service.load_order(company_id, shop_id, transaction_code, lock=True)
            transaction_service.transition_payment_status(payment, (STATUS_COMPLETED,), STATUS_CANCELLED)

            for line in lines:
                for detail in line.used_product_details:
                    credit(company_id, shop_id, detail.product_id, detail.quantity)
                    touched.add(detail.product_id)
                transaction_service.set_line_status(line, STATUS_CANCELLED)
        return payment, lines, touched

    payment, lines, touched = run_with_retry(_op)

    events = touched.events(company_id, shop_id)
    events.append((EVENT_CANCEL_ORDER, payment.to_dict()))
    events.append((EVENT_CANCEL_FINISHED_GOODS, [line.to_dict() for line in lines]))
    publisher.publish_all(events)

    log_activity(company_id, shop_id, user_id, f"Order cancelled with transaction code: {transaction_code}")
    current_app.logger.info("Order %s cancelled for %s/%s", transaction_code, company_id, shop_id)
    return _order_to_dict(payment, lines)


def _returnable_line(lines: list[FinishedGoodTransaction], product_id: str, statuses) -> FinishedGoodTransaction:
    for line in lines:
        if line.finishedgood_id == product_id and line.transaction_status in statuses and line.finishedgood_qty > 0:
            return line
    raise TransactionNotFound(
        f"No returnable line found for product ID: {product_id}",
        details={"product_id": product_id},
    )


def _credit_returned_share(company_id: str, shop_id: str, line: FinishedGoodTransaction,
                           quantity: Decimal, touched: _TouchedStock) -> None:
    """
    Put back the share of the sale-time consumption that quantity represents.

    Amounts are taken as the difference of cumulative returned shares, so
    returning a line in several steps puts back exactly what the sale took.
    """
    sold = line.sold_qty
    returned_before = sold - line.finishedgood_qty
    returned_after = returned_before + quantity

    for detail in line.used_product_details:
        amount = quantize(detail.quantity * returned_after / sold) - quantize(detail.quantity * returned_before / sold)
        if amount <= 0:
            continue
        credit(company_id, shop_id, detail.product_id, amount)
        touched.add(detail.product_id)


def _payment_status_after_return(lines: list[FinishedGoodTransaction]) -> str:
    if current_app.config.get("ORDER_RETURN_REQUIRES_FULL_LINES"):
        finished = (STATUS_RETURNED,)
    else:
        finished = (STATUS_RETURNED, STATUS_PARTIALLY_RETURNED)
    if all(line.transaction_status in finished for line in lines):
        return STATUS_RETURNED
    return STATUS_PARTIALLY_RETURNED


def return_order_items(company_id: str, shop_id: str, user_id: str, transaction_code: str, items) -> dict:
    """
    Return some or all items of an order.

    Good items go back to inventory; Damaged or Expired items are written off
    as wastage. Every item is processed in one unit of work.

    Raises:
        TransactionNotFound: unknown code, or no matching returnable line
        InvalidQuantity: more than what is left on the line
        InvalidOrderState: the order was cancelled
        ValidationError: malformed items or unknown condition
    """
    if not items or not all(isinstance(item, ReturnItemRequest) for item in items):
        items = parse_return_items(items)

    line_statuses = (STATUS_COMPLETED,)
    if current_app.config.get("RETURN_ALLOW_PARTIALLY_RETURNED_LINES"):
        line_statuses = (STATUS_COMPLETED, STATUS_PARTIALLY_RETURNED)

    def _op():
        touched = _TouchedStock()
        with atomic():
            payment, lines = transaction_service.load_order(company_id, shop_id, transaction_code, lock=True)
            if payment.transaction_status not in RETURNABLE_PAYMENT_STATUSES:
                raise InvalidOrderState(
                    f"Transaction {transaction_code} is {payment.transaction_status}",
                    details={"transaction_code": transaction_code, "transaction_status": payment.transaction_status},
                )

            for item in items:
                line = _returnable_line(lines, item.product_id, line_statuses)
                if item.quantity <= 0:
                    raise InvalidQuantity("Return quantity must be greater than zero")
                if item.quantity > line.finishedgood_qty:
                    raise InvalidQuantity(
                        f"Return quantity exceeds remaining quantity for product ID: {item.product_id}",
                        details={
                            "product_id": item.product_id,
                            "requested": float(item.quantity),
                            "remaining": float(line.finishedgood_qty),
                        },
                    )

                if item.condition == CONDITION_GOOD:
                    _credit_returned_share(company_id, shop_id, line, item.quantity, touched)
                elif item.condition in (CONDITION_DAMAGED, CONDITION_EXPIRED):
                    transaction_service.create_wastage(
                        company_id, shop_id, user_id, line.finishedgood_id, item.quantity,
                        item.condition, transaction_code,
                    )
                else:
                    raise ValidationError(f"Invalid return condition: {item.condition}")

                remaining = line.finishedgood_qty - item.quantity
                status = STATUS_RETURNED if remaining == ZERO else STATUS_PARTIALLY_RETURNED
                transaction_service.apply_line_return(line, remaining, status)

            transaction_service.transition_payment_status(
                payment, RETURNABLE_PAYMENT_STATUSES, _payment_status_after_return(lines)
            )
        return payment, lines, touched

    payment, lines, touched = run_with_retry(_op)

    events = touched.events(company_id, shop_id)
    events.append((EVENT_ORDER_RETURNED, payment.to_dict()))
    publisher.publish_all(events)

    log_activity(company_id, shop_id, user_id, f"Order returned with transaction code: {transaction_code}")
    current_app.logger.info(
        "Return of %d item(s) recorded on %s (%s)", len(items), transaction_code, payment.transaction_status
    )
    return _order_to_dict(payment, lines)


def get_order(company_id: str, shop_id: str, transaction_code: str) -> dict:
    payment, lines = transaction_service.load_order(company_id, shop_id, transaction_code)
    return _order_to_dict(payment, lines)


def list_orders(company_id: str, shop_id: str, status: str | None = None) -> list[dict]:
    return [
        payment.to_dict()
        for payment in transaction_service.list_payment_transactions(company_id, shop_id, status=status)
    ]
