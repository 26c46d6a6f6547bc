# Overview: Atomic human-readable code generation (SalesID-1, BOMID-7, ...).

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import CodeSequence

# Scope marker for company-wide counters (products, BOMs)
COMPANY_SCOPE = "*"

KIND_SALES = "SalesID"
KIND_PAYMENT = "PaymentID"
KIND_FINISHED_GOOD = "FTID"
KIND_WASTAGE = "WastageID"
KIND_BOM = "BOMID"
KIND_PRODUCT = "ProductID"
KIND_RAW_MATERIAL = "RMTID"
KIND_GRN = "GRN"


def _increment(company_id: str, shop_id: str, kind: str) -> int | None:
    stmt = (
        update(CodeSequence)
        .where(
            CodeSequence.company_id == company_id,
            CodeSequence.shop_id == shop_id,
            CodeSequence.kind == kind,
        )
        .values(next_number=CodeSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(CodeSequence.next_number)
        .filter_by(company_id=company_id, shop_id=shop_id, kind=kind)
        .scalar()
    )
    return current - 1


def next_number(company_id: str, shop_id: str, kind: str) -> int:
    """
    Atomically allocate the next number for (company, shop, kind).

    Runs inside the caller's transaction: a rolled-back order gives its
    numbers back. The first allocation inserts the counter row under a
    savepoint so a concurrent insert only costs a retry of the UPDATE.
    """
    if not company_id or not shop_id or not kind:
        raise ValidationError("company_id, shop_id and kind are required for code generation")

    number = _increment(company_id, shop_id, kind)
    if number is not None:
        return number

    try:
        with db.session.begin_nested():
            db.session.add(CodeSequence(company_id=company_id, shop_id=shop_id, kind=kind, next_number=2))
        return 1
    except IntegrityError:
        number = _increment(company_id, shop_id, kind)
        if number is None:
            raise
        return number


def generate_sequence_code(company_id: str, shop_id: str, user_id: str | None, kind: str) -> str:
    """Return the next code for kind, e.g. "SalesID-42"."""
    number = next_number(company_id, shop_id, kind)
    code = f"{kind}-{number}"
    current_app.logger.debug("Allocated %s for %s/%s (user %s)", code, company_id, shop_id, user_id)
    return code
