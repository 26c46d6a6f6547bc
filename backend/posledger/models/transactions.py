from __future__ import annotations

from ..extensions import db
from ..numbers import as_number
from posledger.time_utils import to_utc_z


# =============================================================================
# STATUS CONSTANTS
# =============================================================================

STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"
STATUS_RETURNED = "Returned"
STATUS_PARTIALLY_RETURNED = "Partially Returned"

TRANSACTION_TYPE_SALES = "Sales"

CONDITION_GOOD = "Good"
CONDITION_DAMAGED = "Damaged"
CONDITION_EXPIRED = "Expired"
RETURN_CONDITIONS = (CONDITION_GOOD, CONDITION_DAMAGED, CONDITION_EXPIRED)


class PaymentTransaction(db.Model):
    """
    Order-level record: one per sale, holding tenders and overall status.

    Shares transaction_code with the order's FinishedGoodTransaction rows.
    There is no FK between them; the order engine keeps them consistent.
    Never deleted, only status transitions.
    """
    __tablename__ = "payment_transactions"
    __table_args__ = (
        db.UniqueConstraint("company_id", "shop_id", "transaction_code", name="uq_payment_txns_shop_code"),
        db.Index("ix_payment_txns_shop_status_occurred", "company_id", "shop_id", "transaction_status", "transaction_date_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.String(64), nullable=False)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)

    transaction_code = db.Column(db.String(64), nullable=False, index=True)
    transaction_date_time = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_type = db.Column(db.String(16), nullable=False, default=TRANSACTION_TYPE_SALES)
    invoice_id = db.Column(db.String(64), nullable=True)

    # Tenders
    bill_total = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    cash_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    card_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    card_digits = db.Column(db.String(8), nullable=True)
    wallet_in = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    wallet_out = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    other_payment = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    loyalty_points = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    customer_id = db.Column(db.String(64), nullable=True)
    selling_type_id = db.Column(db.String(64), nullable=True)
    selling_type_charge = db.Column(db.Numeric(18, 4), nullable=True)
    selling_type_amount = db.Column(db.Numeric(18, 4), nullable=True)

    transaction_in_out = db.Column(db.String(8), nullable=False, default="In")
    transaction_status = db.Column(db.String(32), nullable=False, default=STATUS_COMPLETED, index=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<PaymentTransaction code={self.transaction_code!r} status={self.transaction_status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_id": self.payment_id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "transaction_code": self.transaction_code,
            "transaction_date_time": to_utc_z(self.transaction_date_time),
            "transaction_type": self.transaction_type,
            "invoice_id": self.invoice_id,
            "bill_total": as_number(self.bill_total),
            "cash_amount": as_number(self.cash_amount),
            "card_amount": as_number(self.card_amount),
            "card_digits": self.card_digits,
            "wallet_in": as_number(self.wallet_in),
            "wallet_out": as_number(self.wallet_out),
            "other_payment": as_number(self.other_payment),
            "loyalty_points": as_number(self.loyalty_points),
            "customer_id": self.customer_id,
            "selling_type_id": self.selling_type_id,
            "selling_type_charge": as_number(self.selling_type_charge),
            "selling_type_amount": as_number(self.selling_type_amount),
            "transaction_in_out": self.transaction_in_out,
            "transaction_status": self.transaction_status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FinishedGoodTransaction(db.Model):
    """
    One sale line.

    finishedgood_qty is what is still un-returned; sold_qty never changes.
    used_product_details is the consumption snapshot taken at sale time and
    is the only source for reversals (a BOM edited after the sale must not
    change what a cancel or return puts back).
    """
    __tablename__ = "finished_good_transactions"
    __table_args__ = (
        db.Index("ix_fg_txns_shop_code", "company_id", "shop_id", "transaction_code"),
        db.Index("ix_fg_txns_shop_status_occurred", "company_id", "shop_id", "transaction_status", "transaction_date_time"),
        db.CheckConstraint("finishedgood_qty >= 0", name="ck_fg_txns_qty_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ft_id = db.Column(db.String(64), nullable=False)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)

    finishedgood_id = db.Column(db.String(64), nullable=False, index=True)
    transaction_code = db.Column(db.String(64), nullable=False)
    transaction_date_time = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_type = db.Column(db.String(16), nullable=False, default=TRANSACTION_TYPE_SALES)
    transaction_in_out = db.Column(db.String(8), nullable=False, default="Out")
    order_no = db.Column(db.String(64), nullable=True)

    selling_type = db.Column(db.String(64), nullable=True)
    selling_price = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    customer_id = db.Column(db.String(64), nullable=True)

    sold_qty = db.Column(db.Numeric(18, 4), nullable=False)
    finishedgood_qty = db.Column(db.Numeric(18, 4), nullable=False)
    transaction_status = db.Column(db.String(32), nullable=False, default=STATUS_COMPLETED, index=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    used_product_details = db.relationship(
        "UsedProductDetail",
        back_populates="finished_good_transaction",
        order_by="UsedProductDetail.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<FinishedGoodTransaction ft_id={self.ft_id!r} "
            f"product={self.finishedgood_id!r} status={self.transaction_status!r}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ft_id": self.ft_id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "finishedgood_id": self.finishedgood_id,
            "transaction_code": self.transaction_code,
            "transaction_date_time": to_utc_z(self.transaction_date_time),
            "transaction_type": self.transaction_type,
            "transaction_in_out": self.transaction_in_out,
            "order_no": self.order_no,
            "selling_type": self.selling_type,
            "selling_price": as_number(self.selling_price),
            "discount_amount": as_number(self.discount_amount),
            "customer_id": self.customer_id,
            "sold_qty": as_number(self.sold_qty),
            "finishedgood_qty": as_number(self.finishedgood_qty),
            "used_product_details": [detail.to_dict() for detail in self.used_product_details],
            "transaction_status": self.transaction_status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class UsedProductDetail(db.Model):
    """Inventory consumed by one sale line: product, quantity debited, WAC at debit time."""
    __tablename__ = "used_product_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    finished_good_transaction_pk = db.Column(
        db.Integer, db.ForeignKey("finished_good_transactions.id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    quantity = db.Column(db.Numeric(18, 4), nullable=False)
    current_wac = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    finished_good_transaction = db.relationship("FinishedGoodTransaction", back_populates="used_product_details")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": as_number(self.quantity),
            "current_wac": as_number(self.current_wac),
        }


class Wastage(db.Model):
    """Goods written off when a returned item comes back Damaged or Expired. Immutable."""
    __tablename__ = "wastage"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    wastage_id = db.Column(db.String(64), nullable=False, index=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Numeric(18, 4), nullable=False)
    uom_id = db.Column(db.String(32), nullable=False, default="Unit")
    reason = db.Column(db.String(255), nullable=False)
    condition = db.Column(db.String(16), nullable=False)
    transaction_code = db.Column(db.String(64), nullable=True, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    user_id = db.Column(db.String(64), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wastage_id": self.wastage_id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "quantity": as_number(self.quantity),
            "uom_id": self.uom_id,
            "reason": self.reason,
            "condition": self.condition,
            "transaction_code": self.transaction_code,
            "date": to_utc_z(self.date),
            "user_id": self.user_id,
        }
