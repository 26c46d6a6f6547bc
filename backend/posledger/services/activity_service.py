# Overview: Activity log and daily balance collaborators used by the order engine.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog, DailyBalance
from ..numbers import to_decimal
from posledger.time_utils import utcnow


def log_activity(company_id: str, shop_id: str, user_id: str | None, message: str) -> ActivityLog | None:
    """
    Best-effort activity trail entry, written in its own commit.

    Call only after the primary operation has committed. A failure here is
    logged and never reaches the caller.
    """
    current_app.logger.info("[%s/%s] %s", company_id, shop_id, message)
    try:
        entry = ActivityLog(company_id=company_id, shop_id=shop_id, user_id=user_id, message=message[:512])
        db.session.add(entry)
        db.session.commit()
        return entry
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to write activity log for %s/%s", company_id, shop_id)
        return None


def update_daily_balance(
    company_id: str,
    shop_id: str,
    user_id: str | None,
    amount,
    remarks: str | None = None,
) -> DailyBalance:
    """
    Add amount to today's close amount for the shop.

    Runs inside the caller's transaction (no commit).
    """
    amount = to_decimal(amount or 0)
    today = utcnow().date()

    stmt = (
        update(DailyBalance)
        .where(
            DailyBalance.company_id == company_id,
            DailyBalance.shop_id == shop_id,
            DailyBalance.business_date == today,
        )
        .values(close_amount=DailyBalance.close_amount + amount, remarks=remarks, created_by=user_id)
        .execution_options(synchronize_session=False)
    )
    if not db.session.execute(stmt).rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(DailyBalance(
                    company_id=company_id,
                    shop_id=shop_id,
                    business_date=today,
                    close_amount=amount,
                    remarks=remarks,
                    created_by=user_id,
                ))
        except IntegrityError:
            db.session.execute(stmt)

    return (
        db.session.query(DailyBalance)
        .filter_by(company_id=company_id, shop_id=shop_id, business_date=today)
        .populate_existing()
        .one()
    )


def get_daily_balance(company_id: str, shop_id: str, business_date=None) -> Decimal:
    business_date = business_date or utcnow().date()
    row = (
        db.session.query(DailyBalance)
        .filter_by(company_id=company_id, shop_id=shop_id, business_date=business_date)
        .first()
    )
    return row.close_amount if row else Decimal("0")
