"""
Transaction Recorder: persistence and identity generation for order records.

No business branching beyond field mapping. Functions here never commit;
the order engine owns the unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import update

from ..errors import InvalidOrderState, TransactionNotFound
from ..extensions import db
from ..models import FinishedGoodTransaction, PaymentTransaction, UsedProductDetail, Wastage
from ..models.transactions import STATUS_COMPLETED, TRANSACTION_TYPE_SALES
from ..validation import OrderItemRequest, OrderRequest
from posledger.time_utils import utcnow
from .concurrency import lock_for_update
from .sequence_service import (
    KIND_FINISHED_GOOD,
    KIND_PAYMENT,
    KIND_WASTAGE,
    generate_sequence_code,
)

WASTAGE_REASON_RETURN = "Returned Order"


@dataclass(frozen=True)
class UsageLine:
    """One inventory consumption captured at sale time."""
    product_id: str
    quantity: Decimal
    current_wac: Decimal


def create_payment_transaction(
    company_id: str,
    shop_id: str,
    user_id: str,
    transaction_code: str,
    order: OrderRequest,
    *,
    occurred_at=None,
) -> PaymentTransaction:
    payment = PaymentTransaction(
        payment_id=generate_sequence_code(company_id, shop_id, user_id, KIND_PAYMENT),
        company_id=company_id,
        shop_id=shop_id,
        transaction_code=transaction_code,
        transaction_date_time=occurred_at or utcnow(),
        transaction_type=TRANSACTION_TYPE_SALES,
        invoice_id=order.invoice_id,
        bill_total=order.bill_total,
        cash_amount=order.cash_amount,
        card_amount=order.card_amount,
        card_digits=order.card_digits,
        wallet_in=order.wallet_in,
        wallet_out=order.wallet_out,
        other_payment=order.other_payment,
        loyalty_points=order.loyalty_points,
        customer_id=order.customer_id,
        selling_type_id=order.selling_type_id,
        selling_type_charge=order.selling_type_charge,
        selling_type_amount=order.selling_type_amount,
        transaction_in_out="In",
        transaction_status=STATUS_COMPLETED,
        created_by=user_id,
    )
    db.session.add(payment)
    return payment


def create_finished_good_transaction(
    company_id: str,
    shop_id: str,
    user_id: str,
    transaction_code: str,
    order: OrderRequest,
    item: OrderItemRequest,
    usage: list[UsageLine],
    *,
    occurred_at=None,
) -> FinishedGoodTransaction:
    line = FinishedGoodTransaction(
        ft_id=generate_sequence_code(company_id, shop_id, user_id, KIND_FINISHED_GOOD),
        company_id=company_id,
        shop_id=shop_id,
        finishedgood_id=item.product_id,
        transaction_code=transaction_code,
        transaction_date_time=occurred_at or utcnow(),
        transaction_type=TRANSACTION_TYPE_SALES,
        transaction_in_out="Out",
        order_no=order.invoice_id,
        selling_type=order.selling_type,
        selling_price=item.selling_price,
        discount_amount=item.discount_amount,
        customer_id=order.customer_id,
        sold_qty=item.quantity,
        finishedgood_qty=item.quantity,
        transaction_status=STATUS_COMPLETED,
        created_by=user_id,
    )
    line.used_product_details = [
        UsedProductDetail(
            position=position,
            product_id=entry.product_id,
            quantity=entry.quantity,
            current_wac=entry.current_wac,
        )
        for position, entry in enumerate(usage)
    ]
    db.session.add(line)
    return line


def create_wastage(
    company_id: str,
    shop_id: str,
    user_id: str,
    product_id: str,
    quantity,
    condition: str,
    transaction_code: str,
    *,
    reason: str = WASTAGE_REASON_RETURN,
) -> Wastage:
    wastage = Wastage(
        wastage_id=generate_sequence_code(company_id, shop_id, user_id, KIND_WASTAGE),
        company_id=company_id,
        shop_id=shop_id,
        product_id=product_id,
        quantity=quantity,
        uom_id="Unit",
        reason=reason,
        condition=condition,
        transaction_code=transaction_code,
        date=utcnow(),
        user_id=user_id,
    )
    db.session.add(wastage)
    return wastage


def find_payment(company_id: str, shop_id: str, transaction_code: str, *, lock: bool = False) -> PaymentTransaction | None:
    query = db.session.query(PaymentTransaction).filter_by(
        company_id=company_id, shop_id=shop_id, transaction_code=transaction_code
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def load_order(
    company_id: str,
    shop_id: str,
    transaction_code: str,
    *,
    lock: bool = False,
) -> tuple[PaymentTransaction, list[FinishedGoodTransaction]]:
    """
    Load the payment record and its sale lines by transaction code.

    Raises TransactionNotFound when either side is missing.
    """
    payment = find_payment(company_id, shop_id, transaction_code, lock=lock)
    if payment is None:
        raise TransactionNotFound(
            f"Payment transaction not found for code: {transaction_code}",
            details={"transaction_code": transaction_code},
        )

    query = (
        db.session.query(FinishedGoodTransaction)
        .filter_by(company_id=company_id, shop_id=shop_id, transaction_code=transaction_code)
        .order_by(FinishedGoodTransaction.id.asc())
    )
    if lock:
        query = lock_for_update(query)
    lines = query.all()
    if not lines:
        raise TransactionNotFound(
            f"Finished good transactions not found for code: {transaction_code}",
            details={"transaction_code": transaction_code},
        )
    return payment, lines


def transition_payment_status(payment: PaymentTransaction, allowed_from, new_status: str) -> PaymentTransaction:
    """
    Move a payment to new_status only if its stored status is in allowed_from.

    The check and the write are one UPDATE, so two concurrent requests cannot
    both pass it.
    """
    allowed_from = tuple(allowed_from)
    stmt = (
        update(PaymentTransaction)
        .where(
            PaymentTransaction.id == payment.id,
            PaymentTransaction.transaction_status.in_(allowed_from),
        )
        .values(transaction_status=new_status, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if not db.session.execute(stmt).rowcount:
        db.session.refresh(payment)
        raise InvalidOrderState(
            f"Transaction {payment.transaction_code} is {payment.transaction_status}",
            details={
                "transaction_code": payment.transaction_code,
                "transaction_status": payment.transaction_status,
                "allowed": list(allowed_from),
            },
        )
    db.session.refresh(payment)
    return payment


def set_line_status(line: FinishedGoodTransaction, status: str) -> FinishedGoodTransaction:
    line.transaction_status = status
    return line


def apply_line_return(line: FinishedGoodTransaction, remaining, status: str) -> FinishedGoodTransaction:
    line.finishedgood_qty = remaining
    line.transaction_status = status
    return line


def list_payment_transactions(company_id: str, shop_id: str, *, status: str | None = None) -> list[PaymentTransaction]:
    query = db.session.query(PaymentTransaction).filter_by(company_id=company_id, shop_id=shop_id)
    if status:
        query = query.filter(PaymentTransaction.transaction_status == status)
    return query.order_by(
        PaymentTransaction.transaction_date_time.desc(),
        PaymentTransaction.id.desc(),
    ).all()
