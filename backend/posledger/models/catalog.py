from __future__ import annotations

from ..extensions import db
from ..numbers import as_number
from posledger.time_utils import to_utc_z

MAX_BOM_ITEMS = 100


class Product(db.Model):
    """
    Product master data, scoped to a company.

    CLASSIFICATION:
    - has_raw_materials=True: sold through a bill of materials; selling it
      consumes the BOM's raw materials.
    - requires_grn=True: stocked directly (goods received notes); selling it
      consumes the product's own inventory row.
    - neither: made-to-order / service item, no stock movement.

    has_raw_materials wins when both flags are set.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("company_id", "product_id", name="uq_products_company_product"),
        db.UniqueConstraint("company_id", "plu_code", name="uq_products_company_plu"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)

    # Human-readable identifier (e.g., "ProductID-12"); referenced by every other table
    product_id = db.Column(db.String(64), nullable=False, index=True)
    plu_code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    product_type = db.Column(db.String(32), nullable=False, default="Finished Good")
    category_id = db.Column(db.String(64), nullable=True)
    uom_id = db.Column(db.String(32), nullable=True)
    min_qty = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    requires_grn = db.Column(db.Boolean, nullable=False, default=False)
    has_raw_materials = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product product_id={self.product_id!r} name={self.name!r}>"

    @property
    def stock_tracking(self) -> str:
        if self.has_raw_materials:
            return "BOM"
        if self.requires_grn:
            return "DIRECT"
        return "NONE"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "product_id": self.product_id,
            "plu_code": self.plu_code,
            "name": self.name,
            "product_type": self.product_type,
            "category_id": self.category_id,
            "uom_id": self.uom_id,
            "min_qty": as_number(self.min_qty),
            "requires_grn": self.requires_grn,
            "has_raw_materials": self.has_raw_materials,
            "stock_tracking": self.stock_tracking,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BillOfMaterials(db.Model):
    """
    Raw materials needed to produce one unit of a finished good.

    One BOM per finished good per company (unique constraint, not a
    lookup convention). Items are ordered by position.
    """
    __tablename__ = "bills_of_materials"
    __table_args__ = (
        db.UniqueConstraint("company_id", "bom_id", name="uq_boms_company_bom"),
        db.UniqueConstraint("company_id", "finished_good_id", name="uq_boms_company_finished_good"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    bom_id = db.Column(db.String(64), nullable=False)
    finished_good_id = db.Column(db.String(64), nullable=False, index=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "BomItem",
        back_populates="bom",
        order_by="BomItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "bom_id": self.bom_id,
            "finished_good_id": self.finished_good_id,
            "items": [item.to_dict() for item in self.items],
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BomItem(db.Model):
    """One raw material line on a BOM: qty per finished unit."""
    __tablename__ = "bom_items"
    __table_args__ = (
        db.CheckConstraint("qty >= 0", name="ck_bom_items_qty_nonneg"),
        db.CheckConstraint("current_wac >= 0", name="ck_bom_items_wac_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bom_pk = db.Column(db.Integer, db.ForeignKey("bills_of_materials.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.String(64), nullable=False)
    qty = db.Column(db.Numeric(18, 4), nullable=False)
    current_wac = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    bom = db.relationship("BillOfMaterials", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "qty": as_number(self.qty),
            "current_wac": as_number(self.current_wac),
        }
