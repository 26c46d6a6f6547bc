# Overview: Pytest coverage for the order lifecycle engine.

"""
Order Lifecycle Tests

Test Coverage:
- create: BOM expansion, direct (GRN) debit, made-to-order lines, atomicity
- cancel: reversal symmetry, double-cancel protection
- return: Good returns back to stock, Damaged/Expired to wastage,
  partial returns, payment status rules and their configuration flags
- events and activity log after commit
"""

from decimal import Decimal

import pytest
from posledger.errors import (
    BomNotFound,
    InsufficientInventory,
    InventoryNotFound,
    InvalidOrderState,
    InvalidQuantity,
    ProductNotFound,
    TransactionNotFound,
    ValidationError,
)
from posledger.extensions import publisher
from posledger.models import ActivityLog, FinishedGoodTransaction, PaymentTransaction, Wastage
from posledger.services import order_service
from posledger.services.activity_service import get_daily_balance

from conftest import COMPANY, SHOP, USER, order_of, quantity_of


def _return(code, *items):
    payload = [
        {"product_id": product_id, "quantity": quantity, "condition": condition}
        for product_id, quantity, condition in items
    ]
    return order_service.return_order_items(COMPANY, SHOP, USER, code, payload)


@pytest.fixture
def grn_product(make_product, make_stock):
    product = make_product("Soda", requires_grn=True)
    make_stock(product.product_id, 10, wac="1.5")
    return product


@pytest.fixture
def cake(make_product, make_stock, make_bom):
    """Cake consumes 2 flour and 3 sugar per unit."""
    flour = make_product("Flour", requires_grn=True)
    sugar = make_product("Sugar", requires_grn=True)
    cake = make_product("Cake", has_raw_materials=True)
    make_stock(flour.product_id, 100, wac="0.5")
    make_stock(sugar.product_id, 100, wac="0.2")
    make_bom(cake.product_id, [(flour.product_id, 2), (sugar.product_id, 3)])
    return cake, flour, sugar


class TestCreateOrder:
    def test_direct_inventory_product(self, db_session, grn_product):
        code = order_service.create_order(
            COMPANY, SHOP, USER, order_of((grn_product.product_id, 3, "4.00"), bill_total="12")
        )

        assert code == "SalesID-1"
        assert quantity_of(grn_product.product_id) == Decimal("7")

        order = order_service.get_order(COMPANY, SHOP, code)
        assert order["transaction_status"] == "Completed"
        assert order["transaction_in_out"] == "In"
        assert order["payment_id"] == "PaymentID-1"
        [line] = order["finished_goods"]
        assert line["ft_id"] == "FTID-1"
        assert line["finishedgood_qty"] == 3
        assert line["used_product_details"] == [
            {"product_id": grn_product.product_id, "quantity": 3, "current_wac": 1.5},
        ]

    def test_bom_expansion(self, db_session, cake):
        cake, flour, sugar = cake

        code = order_service.create_order(COMPANY, SHOP, USER, order_of((cake.product_id, 5, "10")))

        assert quantity_of(flour.product_id) == Decimal("90")
        assert quantity_of(sugar.product_id) == Decimal("85")
        [line] = order_service.get_order(COMPANY, SHOP, code)["finished_goods"]
        assert line["used_product_details"] == [
            {"product_id": flour.product_id, "quantity": 10, "current_wac": 0.5},
            {"product_id": sugar.product_id, "quantity": 15, "current_wac": 0.2},
        ]

    def test_made_to_order_product_moves_no_inventory(self, db_session, make_product, grn_product):
        service = make_product("Gift wrap")

        code = order_service.create_order(COMPANY, SHOP, USER, order_of((service.product_id, 2, "1")))

        [line] = order_service.get_order(COMPANY, SHOP, code)["finished_goods"]
        assert line["used_product_details"] == []
        assert quantity_of(grn_product.product_id) == Decimal("10")

    def test_short_second_line_rolls_back_everything(self, db_session, make_product, make_stock, grn_product, events):
        scarce = make_product("Scarce", requires_grn=True)
        make_stock(scarce.product_id, 1)

        with pytest.raises(InsufficientInventory):
            order_service.create_order(
                COMPANY, SHOP, USER,
                order_of((grn_product.product_id, 3), (scarce.product_id, 2), bill_total="50"),
            )

        assert quantity_of(grn_product.product_id) == Decimal("10")
        assert quantity_of(scarce.product_id) == Decimal("1")
        assert db_session.query(PaymentTransaction).count() == 0
        assert db_session.query(FinishedGoodTransaction).count() == 0
        assert get_daily_balance(COMPANY, SHOP) == Decimal("0")
        assert events == []

    def test_unknown_product(self, db_session, grn_product):
        with pytest.raises(ProductNotFound):
            order_service.create_order(
                COMPANY, SHOP, USER, order_of((grn_product.product_id, 1), ("ProductID-404", 1))
            )
        assert quantity_of(grn_product.product_id) == Decimal("10")
        assert db_session.query(PaymentTransaction).count() == 0

    def test_bom_product_without_bom(self, db_session, make_product):
        pizza = make_product("Pizza", has_raw_materials=True)

        with pytest.raises(BomNotFound):
            order_service.create_order(COMPANY, SHOP, USER, order_of((pizza.product_id, 1)))
        assert db_session.query(PaymentTransaction).count() == 0

    def test_missing_stock_row(self, db_session, make_product):
        product = make_product("Unstocked", requires_grn=True)

        with pytest.raises(InventoryNotFound):
            order_service.create_order(COMPANY, SHOP, USER, order_of((product.product_id, 1)))
        assert db_session.query(PaymentTransaction).count() == 0

    def test_empty_order_rejected(self, db_session):
        with pytest.raises(ValidationError):
            order_service.create_order(COMPANY, SHOP, USER, {"items": []})

    def test_quantity_finer_than_storage_scale_is_rejected(self, db_session, cake):
        cake, flour, _ = cake

        with pytest.raises(ValidationError):
            order_service.create_order(
                COMPANY, SHOP, USER, {"items": [{"product_id": cake.product_id, "quantity": "0.00004"}]}
            )
        with pytest.raises(ValidationError):
            order_service.create_order(COMPANY, SHOP, USER, order_of((cake.product_id, "0.00004")))

        assert db_session.query(PaymentTransaction).count() == 0
        assert quantity_of(flour.product_id) == Decimal("100")

    def test_bom_requirement_rounding_to_zero_is_rejected(self, db_session, make_product, make_stock, make_bom):
        salt = make_product("Salt", requires_grn=True)
        pretzel = make_product("Pretzel", has_raw_materials=True)
        make_stock(salt.product_id, 10)
        make_bom(pretzel.product_id, [(salt.product_id, "0.1")])

        with pytest.raises(ValidationError) as excinfo:
            order_service.create_order(COMPANY, SHOP, USER, order_of((pretzel.product_id, "0.0001")))

        assert excinfo.value.details["raw_material_id"] == salt.product_id
        assert db_session.query(FinishedGoodTransaction).count() == 0
        assert quantity_of(salt.product_id) == Decimal("10")

    def test_daily_balance_and_activity_log(self, db_session, grn_product):
        order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 1), bill_total="4.5"))
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 1), bill_total="5.5"))

        assert code == "SalesID-2"
        assert get_daily_balance(COMPANY, SHOP) == Decimal("10")
        messages = [row.message for row in db_session.query(ActivityLog).order_by(ActivityLog.id).all()]
        assert messages[-1] == "Order processed with transaction code: SalesID-2"

    def test_inventory_events_after_commit(self, db_session, cake, events):
        cake, flour, sugar = cake

        order_service.create_order(COMPANY, SHOP, USER, order_of((cake.product_id, 1)))

        assert [(name, payload["product_id"]) for name, payload in events] == [
            ("updateInventory", flour.product_id),
            ("updateInventory", sugar.product_id),
        ]
        assert events[0][1]["total_quantity"] == 98

    def test_failing_subscriber_does_not_undo_order(self, db_session, grn_product):
        def boom(name, payload):
            raise RuntimeError("socket closed")

        publisher.subscribe("updateInventory", boom)

        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 2)))

        assert order_service.get_order(COMPANY, SHOP, code)["transaction_status"] == "Completed"
        assert quantity_of(grn_product.product_id) == Decimal("8")

    def test_unsubscribed_listener_stops_receiving(self, db_session, grn_product):
        received = []

        def listener(name, payload):
            received.append(payload["total_quantity"])

        publisher.subscribe("updateInventory", listener)
        order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 1)))
        publisher.unsubscribe("updateInventory", listener)
        order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 1)))

        assert received == [9]


class TestCancelOrder:
    def test_cancel_restores_inventory(self, db_session, grn_product, events):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 3)))
        assert quantity_of(grn_product.product_id) == Decimal("7")
        events.clear()

        result = order_service.cancel_order(COMPANY, SHOP, USER, code)

        assert quantity_of(grn_product.product_id) == Decimal("10")
        assert result["transaction_status"] == "Cancelled"
        assert [line["transaction_status"] for line in result["finished_goods"]] == ["Cancelled"]
        assert [name for name, _ in events] == [
            "updateInventory",
            "cancelOrder",
            "cancelFinishedGoodTransactions",
        ]

    def test_cancel_is_symmetric_for_bom_orders(self, db_session, cake, grn_product):
        cake, flour, sugar = cake
        code = order_service.create_order(
            COMPANY, SHOP, USER, order_of((cake.product_id, 5), (grn_product.product_id, 2))
        )

        order_service.cancel_order(COMPANY, SHOP, USER, code)

        assert quantity_of(flour.product_id) == Decimal("100")
        assert quantity_of(sugar.product_id) == Decimal("100")
        assert quantity_of(grn_product.product_id) == Decimal("10")

    def test_cancel_uses_sale_time_snapshot(self, db_session, cake):
        from posledger.services import bom_service
        from posledger.validation import BomItemRequest

        cake, flour, sugar = cake
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((cake.product_id, 1)))
        bom_service.update_bom(
            COMPANY, SHOP, USER, cake.product_id,
            [BomItemRequest(product_id=flour.product_id, qty=Decimal("7"))],
        )

        order_service.cancel_order(COMPANY, SHOP, USER, code)

        assert quantity_of(flour.product_id) == Decimal("100")
        assert quantity_of(sugar.product_id) == Decimal("100")

    def test_second_cancel_is_rejected(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 3)))
        order_service.cancel_order(COMPANY, SHOP, USER, code)

        with pytest.raises(InvalidOrderState):
            order_service.cancel_order(COMPANY, SHOP, USER, code)
        assert quantity_of(grn_product.product_id) == Decimal("10")

    def test_cancel_after_return_is_rejected(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 3)))
        _return(code, (grn_product.product_id, 1, "Good"))

        with pytest.raises(InvalidOrderState):
            order_service.cancel_order(COMPANY, SHOP, USER, code)
        assert quantity_of(grn_product.product_id) == Decimal("8")

    def test_cancel_unknown_code(self, db_session):
        with pytest.raises(TransactionNotFound):
            order_service.cancel_order(COMPANY, SHOP, USER, "SalesID-404")


class TestReturns:
    def test_partial_good_return(self, db_session, grn_product, make_product, events):
        other = make_product("Gift wrap")
        code = order_service.create_order(
            COMPANY, SHOP, USER, order_of((grn_product.product_id, 4), (other.product_id, 1))
        )
        events.clear()

        result = _return(code, (grn_product.product_id, 1, "Good"))

        assert quantity_of(grn_product.product_id) == Decimal("7")
        lines = {line["finishedgood_id"]: line for line in result["finished_goods"]}
        assert lines[grn_product.product_id]["finishedgood_qty"] == 3
        assert lines[grn_product.product_id]["sold_qty"] == 4
        assert lines[grn_product.product_id]["transaction_status"] == "Partially Returned"
        assert lines[other.product_id]["transaction_status"] == "Completed"
        assert result["transaction_status"] == "Partially Returned"
        assert [name for name, _ in events] == ["updateInventory", "orderReturned"]

    def test_full_return_of_every_line(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 4)))

        result = _return(code, (grn_product.product_id, 4, "Good"))

        assert quantity_of(grn_product.product_id) == Decimal("10")
        assert result["finished_goods"][0]["transaction_status"] == "Returned"
        assert result["transaction_status"] == "Returned"

    def test_partially_returned_lines_count_as_returned_by_default(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 4)))

        result = _return(code, (grn_product.product_id, 1, "Good"))

        assert result["finished_goods"][0]["transaction_status"] == "Partially Returned"
        assert result["transaction_status"] == "Returned"

    def test_full_lines_flag(self, db_session, app, monkeypatch, grn_product):
        monkeypatch.setitem(app.config, "ORDER_RETURN_REQUIRES_FULL_LINES", True)
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 4)))

        result = _return(code, (grn_product.product_id, 1, "Good"))

        assert result["transaction_status"] == "Partially Returned"

    def test_second_return_needs_flag(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 4)))
        _return(code, (grn_product.product_id, 1, "Good"))

        with pytest.raises(TransactionNotFound):
            _return(code, (grn_product.product_id, 1, "Good"))
        assert quantity_of(grn_product.product_id) == Decimal("7")

    def test_remainder_return_completes_reversal(self, db_session, app, monkeypatch, cake):
        monkeypatch.setitem(app.config, "RETURN_ALLOW_PARTIALLY_RETURNED_LINES", True)
        monkeypatch.setitem(app.config, "ORDER_RETURN_REQUIRES_FULL_LINES", True)
        cake, flour, sugar = cake
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((cake.product_id, 5)))

        first = _return(code, (cake.product_id, 2, "Good"))
        assert quantity_of(flour.product_id) == Decimal("94")
        assert quantity_of(sugar.product_id) == Decimal("91")
        assert first["transaction_status"] == "Partially Returned"

        second = _return(code, (cake.product_id, 3, "Good"))
        assert quantity_of(flour.product_id) == Decimal("100")
        assert quantity_of(sugar.product_id) == Decimal("100")
        assert second["finished_goods"][0]["transaction_status"] == "Returned"
        assert second["transaction_status"] == "Returned"

    def test_stepwise_returns_put_back_exact_fractional_usage(self, db_session, app, monkeypatch,
                                                             make_product, make_stock, make_bom):
        monkeypatch.setitem(app.config, "RETURN_ALLOW_PARTIALLY_RETURNED_LINES", True)
        syrup = make_product("Syrup", requires_grn=True)
        drink = make_product("Drink", has_raw_materials=True)
        make_stock(syrup.product_id, 10)
        make_bom(drink.product_id, [(syrup.product_id, "0.3333")])
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((drink.product_id, 3)))
        assert quantity_of(syrup.product_id) == Decimal("9.0001")

        for _ in range(3):
            _return(code, (drink.product_id, 1, "Good"))

        assert quantity_of(syrup.product_id) == Decimal("10")

    @pytest.mark.parametrize("condition", ["Damaged", "Expired"])
    def test_written_off_return(self, db_session, grn_product, condition):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 4)))

        _return(code, (grn_product.product_id, 2, condition))

        assert quantity_of(grn_product.product_id) == Decimal("6")
        [wastage] = db_session.query(Wastage).all()
        assert wastage.wastage_id == "WastageID-1"
        assert wastage.product_id == grn_product.product_id
        assert wastage.quantity == Decimal("2")
        assert wastage.condition == condition
        assert wastage.reason == "Returned Order"
        assert wastage.uom_id == "Unit"
        assert wastage.transaction_code == code

    def test_return_more_than_remaining(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 2)))

        with pytest.raises(InvalidQuantity):
            _return(code, (grn_product.product_id, 3, "Good"))

        assert quantity_of(grn_product.product_id) == Decimal("8")
        assert order_service.get_order(COMPANY, SHOP, code)["transaction_status"] == "Completed"

    def test_bad_item_rolls_back_whole_return(self, db_session, grn_product, make_product, make_stock):
        other = make_product("Chips", requires_grn=True)
        make_stock(other.product_id, 5)
        code = order_service.create_order(
            COMPANY, SHOP, USER, order_of((grn_product.product_id, 2), (other.product_id, 1))
        )

        with pytest.raises(InvalidQuantity):
            _return(code, (grn_product.product_id, 1, "Good"), (other.product_id, 9, "Good"))

        assert quantity_of(grn_product.product_id) == Decimal("8")
        lines = order_service.get_order(COMPANY, SHOP, code)["finished_goods"]
        assert [line["transaction_status"] for line in lines] == ["Completed", "Completed"]

    def test_unknown_condition(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 2)))

        with pytest.raises(ValidationError):
            _return(code, (grn_product.product_id, 1, "Lost"))

    def test_product_not_on_order(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 2)))

        with pytest.raises(TransactionNotFound):
            _return(code, ("ProductID-404", 1, "Good"))

    def test_return_on_cancelled_order(self, db_session, grn_product):
        code = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 2)))
        order_service.cancel_order(COMPANY, SHOP, USER, code)

        with pytest.raises(InvalidOrderState):
            _return(code, (grn_product.product_id, 1, "Good"))
        assert quantity_of(grn_product.product_id) == Decimal("10")


class TestListOrders:
    def test_newest_first_with_status_filter(self, db_session, grn_product):
        first = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 1)))
        second = order_service.create_order(COMPANY, SHOP, USER, order_of((grn_product.product_id, 1)))
        order_service.cancel_order(COMPANY, SHOP, USER, first)

        assert [o["transaction_code"] for o in order_service.list_orders(COMPANY, SHOP)] == [second, first]
        assert [o["transaction_code"] for o in order_service.list_orders(COMPANY, SHOP, "Cancelled")] == [first]

    def test_get_unknown_order(self, db_session):
        with pytest.raises(TransactionNotFound):
            order_service.get_order(COMPANY, SHOP, "SalesID-404")
