from __future__ import annotations

from ..extensions import db
from ..numbers import as_number
from posledger.time_utils import to_utc_z


class InventoryStock(db.Model):
    """
    Current stock position for one product in one shop.

    Identity is (company_id, shop_id, product_id). Rows are created explicitly
    (stock registration or goods receipt setup), never implicitly by a sale.

    INVARIANT: total_quantity >= 0 after every committed operation. The ledger
    enforces it with a conditional UPDATE; the check constraint is a
    storage-level backstop.
    """
    __tablename__ = "inventory_stock"
    __table_args__ = (
        db.UniqueConstraint("company_id", "shop_id", "product_id", name="uq_inventory_stock_key"),
        db.CheckConstraint("total_quantity >= 0", name="ck_inventory_stock_qty_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)

    total_quantity = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    weighted_average_cost = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    minimum_quantity = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryStock {self.company_id}/{self.shop_id}/{self.product_id} "
            f"qty={self.total_quantity}>"
        )

    @property
    def needs_restock(self) -> bool:
        return self.total_quantity < self.minimum_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "total_quantity": as_number(self.total_quantity),
            "weighted_average_cost": as_number(self.weighted_average_cost),
            "minimum_quantity": as_number(self.minimum_quantity),
            "needs_restock": self.needs_restock,
            "updated_at": to_utc_z(self.updated_at),
        }


class RawMaterialTransaction(db.Model):
    """
    Goods movement outside of sales (GRN receipts, GIN issues).

    Append-only. The inventory movement report reads inbound GRN rows as
    purchases.
    """
    __tablename__ = "raw_material_transactions"
    __table_args__ = (
        db.Index("ix_rmt_shop_product_occurred", "company_id", "shop_id", "product_id", "transaction_date_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    rmt_id = db.Column(db.String(64), nullable=False, index=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)
    supplier_id = db.Column(db.String(64), nullable=True)
    category_id = db.Column(db.String(64), nullable=True)
    product_id = db.Column(db.String(64), nullable=False)
    finished_good_id = db.Column(db.String(64), nullable=True)

    transaction_date_time = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_type = db.Column(db.String(16), nullable=False, default="GRN")  # GRN, GIN
    transaction_code = db.Column(db.String(64), nullable=False)
    raw_mat_in_out = db.Column(db.String(8), nullable=False, default="In")  # In, Out

    unit_cost = db.Column(db.Numeric(18, 4), nullable=False)
    quantity = db.Column(db.Numeric(18, 4), nullable=False)
    total_cost = db.Column(db.Numeric(18, 4), nullable=False)

    remarks = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(64), nullable=False)
    transaction_status = db.Column(db.String(32), nullable=False, default="Completed")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rmt_id": self.rmt_id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "supplier_id": self.supplier_id,
            "category_id": self.category_id,
            "product_id": self.product_id,
            "finished_good_id": self.finished_good_id,
            "transaction_date_time": to_utc_z(self.transaction_date_time),
            "transaction_type": self.transaction_type,
            "transaction_code": self.transaction_code,
            "raw_mat_in_out": self.raw_mat_in_out,
            "unit_cost": as_number(self.unit_cost),
            "quantity": as_number(self.quantity),
            "total_cost": as_number(self.total_cost),
            "remarks": self.remarks,
            "created_by": self.created_by,
            "transaction_status": self.transaction_status,
        }
