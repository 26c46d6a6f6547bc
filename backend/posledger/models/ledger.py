from __future__ import annotations

from ..extensions import db
from ..numbers import as_number
from posledger.time_utils import to_utc_z


class CodeSequence(db.Model):
    """
    Atomic per-shop code counters (SalesID, PaymentID, FTID, BOMID, ...).

    WHY: "find the last record and add one" races under concurrent orders.
    A single counter row per (company, shop, kind) is incremented with an
    UPDATE instead.
    """
    __tablename__ = "code_sequences"
    __table_args__ = (
        db.UniqueConstraint("company_id", "shop_id", "kind", name="uq_code_sequences_scope_kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)
    kind = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "kind": self.kind,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class ActivityLog(db.Model):
    """Append-only human-readable activity trail (who did what, per shop)."""
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_shop_created", "company_id", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(64), nullable=False)
    shop_id = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.String(64), nullable=True)
    message = db.Column(db.String(512), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "user_id": self.user_id,
            "message": self.message,
            "created_at": to_utc_z(self.created_at),
        }


class DailyBalance(db.Model):
    """Running close amount of a shop for one business day (UTC)."""
    __tablename__ = "daily_balances"
    __table_args__ = (
        db.UniqueConstraint("company_id", "shop_id", "business_date", name="uq_daily_balances_shop_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    shop_id = db.Column(db.String(64), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False)
    close_amount = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    remarks = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(64), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "shop_id": self.shop_id,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "close_amount": as_number(self.close_amount),
            "remarks": self.remarks,
            "created_by": self.created_by,
            "updated_at": to_utc_z(self.updated_at),
        }
