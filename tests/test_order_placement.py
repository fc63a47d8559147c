"""Tests for order placement: pricing, stock and line item attribution."""

from decimal import Decimal

import pytest

from storefront import crud, orders
from storefront.errors import EmptyOrder, InsufficientStock, ProductNotFound
from storefront.models import Order, OrderStatus


def _line(product, quantity):
    return {"product_id": product.id, "quantity": quantity}


def _place(db, customer, items):
    return orders.place_order(db, customer, items, delivery_address="1 Main St, Springfield", payment_method="cod")


class TestSuccessfulPlacement:
    def test_total_is_sum_of_line_totals(self, db, customer, seller, other_seller, make_product):
        lamp = make_product(seller, price="19.99", stock=10, name="Lamp")
        rug = make_product(other_seller, price="120.50", stock=3, name="Rug")

        order = _place(db, customer, [_line(lamp, 3), _line(rug, 2)])

        expected = sum(Decimal(str(i.price)) * i.quantity for i in order.items)
        assert order.total_amount == expected
        assert order.total_amount == Decimal("300.97")

    def test_order_starts_pending_with_history(self, db, customer, seller, make_product):
        product = make_product(seller)

        order = _place(db, customer, [_line(product, 1)])

        assert order.status == OrderStatus.PENDING.value
        assert order.customer_id == customer.id
        assert len(order.history) == 1
        assert order.history[0].status == "Pending"
        assert order.history[0].note == "Order placed"

    def test_stock_reduced_by_ordered_quantity(self, db, customer, seller, other_seller, make_product):
        lamp = make_product(seller, stock=10)
        rug = make_product(other_seller, stock=4)

        _place(db, customer, [_line(lamp, 7), _line(rug, 4)])

        db.refresh(lamp)
        db.refresh(rug)
        assert lamp.stock == 3
        assert rug.stock == 0

    def test_line_items_keep_input_order_and_seller(self, db, customer, seller, other_seller, make_product):
        first = make_product(other_seller, name="First")
        second = make_product(seller, name="Second")

        order = _place(db, customer, [_line(first, 1), _line(second, 2)])

        assert [i.product_name for i in order.items] == ["First", "Second"]
        assert [i.seller_id for i in order.items] == [other_seller.id, seller.id]
        assert [i.quantity for i in order.items] == [1, 2]

    def test_line_item_is_a_snapshot(self, db, customer, seller, other_seller, make_product):
        product = make_product(seller, price="50.00", name="Original name")
        order = _place(db, customer, [_line(product, 2)])

        crud.update_product(db, product.id, {"price": Decimal("75.00"), "name": "Renamed"})
        product.seller_id = other_seller.id
        db.commit()

        db.refresh(order)
        item = order.items[0]
        assert item.price == Decimal("50.00")
        assert item.product_name == "Original name"
        assert item.seller_id == seller.id
        assert order.total_amount == Decimal("100.00")

    def test_repeated_product_lines_share_stock(self, db, customer, seller, make_product):
        product = make_product(seller, stock=5)

        order = _place(db, customer, [_line(product, 2), _line(product, 3)])

        db.refresh(product)
        assert product.stock == 0
        assert len(order.items) == 2

    def test_stock_rows_are_claimed_in_id_order(self, db, customer, seller, make_product, monkeypatch):
        first = make_product(seller, stock=10)
        second = make_product(seller, stock=10)
        real_decrement = crud.decrement_stock
        claimed = []

        def record(session, product_id, quantity):
            claimed.append(product_id)
            return real_decrement(session, product_id, quantity)

        monkeypatch.setattr(crud, "decrement_stock", record)

        order = _place(db, customer, [_line(second, 1), _line(first, 1)])

        assert claimed == [first.id, second.id]
        assert [i.product_id for i in order.items] == [second.id, first.id]


class TestRejectedPlacement:
    def test_empty_order(self, db, customer):
        with pytest.raises(EmptyOrder):
            _place(db, customer, [])
        assert db.query(Order).count() == 0

    def test_unknown_product(self, db, customer, seller, make_product):
        product = make_product(seller, stock=5)

        with pytest.raises(ProductNotFound) as exc_info:
            _place(db, customer, [_line(product, 1), {"product_id": 9999, "quantity": 1}])

        assert exc_info.value.product_id == 9999
        db.refresh(product)
        assert product.stock == 5
        assert db.query(Order).count() == 0

    def test_insufficient_stock_reports_available(self, db, customer, seller, make_product):
        product = make_product(seller, stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            _place(db, customer, [_line(product, 3)])

        assert exc_info.value.product_id == product.id
        assert exc_info.value.available == 2

    def test_failure_on_later_line_leaves_earlier_stock_untouched(
        self, db, customer, seller, other_seller, make_product
    ):
        plenty = make_product(seller, stock=10)
        scarce = make_product(other_seller, stock=1)

        with pytest.raises(InsufficientStock):
            _place(db, customer, [_line(plenty, 4), _line(scarce, 2)])

        db.refresh(plenty)
        db.refresh(scarce)
        assert plenty.stock == 10
        assert scarce.stock == 1
        assert db.query(Order).count() == 0

    def test_repeated_lines_cannot_exceed_stock_together(self, db, customer, seller, make_product):
        product = make_product(seller, stock=5)

        with pytest.raises(InsufficientStock) as exc_info:
            _place(db, customer, [_line(product, 3), _line(product, 3)])

        assert exc_info.value.available == 2
        db.refresh(product)
        assert product.stock == 5

    def test_stock_claimed_concurrently_rolls_back_everything(
        self, db, customer, seller, other_seller, make_product, monkeypatch
    ):
        first = make_product(seller, stock=10)
        second = make_product(other_seller, stock=10)
        real_decrement = crud.decrement_stock

        def lose_race_on_second(session, product_id, quantity):
            if product_id == second.id:
                return False
            return real_decrement(session, product_id, quantity)

        monkeypatch.setattr(crud, "decrement_stock", lose_race_on_second)

        with pytest.raises(InsufficientStock):
            _place(db, customer, [_line(first, 2), _line(second, 2)])

        db.refresh(first)
        db.refresh(second)
        assert first.stock == 10
        assert second.stock == 10
        assert db.query(Order).count() == 0


def test_second_order_rejected_once_stock_runs_low(db, customer, other_customer, seller, make_product):
    product = make_product(seller, price="100", stock=5)

    order = _place(db, customer, [_line(product, 3)])
    db.refresh(product)

    assert product.stock == 2
    assert order.total_amount == Decimal("300")
    assert order.status == "Pending"

    with pytest.raises(InsufficientStock):
        _place(db, other_customer, [_line(product, 3)])

    db.refresh(product)
    assert product.stock == 2
    assert db.query(Order).count() == 1
