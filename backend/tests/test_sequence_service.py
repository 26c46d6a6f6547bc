"""Code sequence and activity collaborator tests."""

from decimal import Decimal

import pytest
from posledger.errors import ValidationError
from posledger.models import ActivityLog, CodeSequence
from posledger.services import activity_service, sequence_service

from conftest import COMPANY, SHOP, USER


class TestSequenceService:
    def test_codes_increment_per_kind(self, db_session):
        codes = [sequence_service.generate_sequence_code(COMPANY, SHOP, USER, "SalesID") for _ in range(3)]
        other = sequence_service.generate_sequence_code(COMPANY, SHOP, USER, "WastageID")
        db_session.commit()

        assert codes == ["SalesID-1", "SalesID-2", "SalesID-3"]
        assert other == "WastageID-1"

    def test_codes_are_scoped_per_shop(self, db_session):
        a = sequence_service.generate_sequence_code(COMPANY, SHOP, USER, "SalesID")
        b = sequence_service.generate_sequence_code(COMPANY, "S2", USER, "SalesID")

        assert a == b == "SalesID-1"

    def test_rolled_back_numbers_are_reused(self, db_session):
        sequence_service.generate_sequence_code(COMPANY, SHOP, USER, "SalesID")
        db_session.commit()
        sequence_service.generate_sequence_code(COMPANY, SHOP, USER, "SalesID")
        db_session.rollback()

        assert sequence_service.generate_sequence_code(COMPANY, SHOP, USER, "SalesID") == "SalesID-2"
        assert db_session.query(CodeSequence).count() == 1

    def test_scope_is_required(self, db_session):
        with pytest.raises(ValidationError):
            sequence_service.next_number(COMPANY, "", "SalesID")


class TestActivityService:
    def test_log_activity_writes_row(self, db_session):
        entry = activity_service.log_activity(COMPANY, SHOP, USER, "Order processed with transaction code: SalesID-1")

        assert entry is not None
        [row] = db_session.query(ActivityLog).all()
        assert row.message == "Order processed with transaction code: SalesID-1"
        assert row.user_id == USER

    def test_daily_balance_accumulates(self, db_session):
        activity_service.update_daily_balance(COMPANY, SHOP, USER, Decimal("10.5"), remarks="first")
        row = activity_service.update_daily_balance(COMPANY, SHOP, USER, Decimal("4.5"), remarks="second")
        db_session.commit()

        assert row.close_amount == Decimal("15")
        assert row.remarks == "second"
        assert activity_service.get_daily_balance(COMPANY, SHOP) == Decimal("15")
        assert activity_service.get_daily_balance(COMPANY, "S2") == Decimal("0")
