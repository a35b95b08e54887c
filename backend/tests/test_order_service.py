"""
Order aggregate tests.

Verifies:
- Basket integrity: unknown ids, unpriced products, and total mismatches are rejected
- Order numbers come from the counter, in creation order
- Statistics follow order creation and deletion exactly
- Status updates never touch statistics
"""

import pytest

from weblarek.errors import BadRequestError, NotFoundError
from weblarek.extensions import db
from weblarek.models import Order, OrderItem
from weblarek.services import order_service, stats_service


def _create(user, items, total, **kwargs):
    return order_service.create_order(
        customer_id=user.id,
        items=items,
        payment=kwargs.get("payment", "online"),
        address=kwargs.get("address", "Spb, Vosstania 1"),
        phone="+71234567890",
        email=user.email,
        total=total,
        comment=kwargs.get("comment", ""),
    )


class TestBasketValidation:

    def test_total_mismatch_rejected(self, customer, product_10, product_20):
        with pytest.raises(BadRequestError) as exc_info:
            _create(customer, [product_10.id, product_20.id], 25)
        assert exc_info.value.message == order_service.INVALID_TOTAL
        assert db.session.query(Order).count() == 0

    def test_exact_total_accepted(self, customer, product_10, product_20):
        order = _create(customer, [product_10.id, product_20.id], 30)
        assert order.total_amount == 30
        assert [p.id for p in order.products] == [product_10.id, product_20.id]

    def test_unknown_product(self, customer, product_10):
        with pytest.raises(BadRequestError) as exc_info:
            _create(customer, [product_10.id, 9999], 10)
        assert exc_info.value.message == "Product with id 9999 not found"

    def test_unpriced_product(self, customer, product_10, product_unpriced):
        with pytest.raises(BadRequestError) as exc_info:
            _create(customer, [product_unpriced.id], 0)
        assert exc_info.value.message == f"Product with id {product_unpriced.id} is not for sale"

    def test_rejected_order_does_not_consume_number(self, customer, product_10):
        with pytest.raises(BadRequestError):
            _create(customer, [product_10.id], 11)
        order = _create(customer, [product_10.id], 10)
        assert order.order_number == 1

    def test_duplicate_items_keep_positions(self, customer, product_10, product_20):
        order = _create(customer, [product_10.id, product_20.id, product_10.id], 40)
        items = db.session.query(OrderItem).filter_by(order_id=order.id).order_by(OrderItem.position).all()
        assert [(i.position, i.product_id) for i in items] == [
            (0, product_10.id),
            (1, product_20.id),
            (2, product_10.id),
        ]


class TestNumbering:

    def test_numbers_increase(self, customer, other_customer, product_10):
        first = _create(customer, [product_10.id], 10)
        second = _create(other_customer, [product_10.id], 10)
        third = _create(customer, [product_10.id], 10)
        assert [first.order_number, second.order_number, third.order_number] == [1, 2, 3]

    def test_number_lookup(self, customer, other_customer, product_10):
        order = _create(customer, [product_10.id], 10)

        assert order_service.get_order_by_number(order.order_number).id == order.id
        assert order_service.get_customer_order_by_number(order.order_number, customer.id).id == order.id
        with pytest.raises(NotFoundError):
            order_service.get_customer_order_by_number(order.order_number, other_customer.id)
        with pytest.raises(NotFoundError):
            order_service.get_order_by_number(999)


class TestStatistics:

    def test_create_updates_stats(self, customer, product_10, product_20):
        first = _create(customer, [product_10.id], 10)
        second = _create(customer, [product_10.id, product_20.id], 30)

        db.session.refresh(customer)
        assert customer.order_count == 2
        assert customer.total_amount == 40
        assert customer.last_order_id == second.id
        assert customer.last_order_date == second.created_at
        assert first.id != second.id

    def test_delete_restores_prior_stats(self, customer, product_10, product_20):
        first = _create(customer, [product_10.id], 10)
        db.session.refresh(customer)
        before = (
            customer.order_count,
            customer.total_amount,
            customer.last_order_id,
            customer.last_order_date,
        )

        second = _create(customer, [product_20.id], 20)
        order_service.delete_order(second.id)

        db.session.refresh(customer)
        after = (
            customer.order_count,
            customer.total_amount,
            customer.last_order_id,
            customer.last_order_date,
        )
        assert after == before
        assert customer.last_order_id == first.id

    def test_deleting_only_order_resets_stats(self, customer, product_10):
        order = _create(customer, [product_10.id], 10)
        order_service.delete_order(order.id)

        db.session.refresh(customer)
        assert customer.order_count == 0
        assert customer.total_amount == 0
        assert customer.last_order_id is None
        assert customer.last_order_date is None

    def test_delete_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.delete_order(12345)

    def test_other_customers_unaffected(self, customer, other_customer, product_10):
        _create(customer, [product_10.id], 10)
        db.session.refresh(other_customer)
        assert other_customer.order_count == 0
        assert other_customer.total_amount == 0


class TestStatusUpdates:

    def test_status_update_does_not_recompute(self, customer, product_10):
        order = _create(customer, [product_10.id], 10)

        # Drift the cache; a status change must leave it alone
        customer.total_amount = 999
        db.session.commit()

        updated = order_service.update_order_status(order.order_number, "delivering")
        assert updated.status == "delivering"

        db.session.refresh(customer)
        assert customer.total_amount == 999

    def test_unknown_status(self, customer, product_10):
        order = _create(customer, [product_10.id], 10)
        with pytest.raises(BadRequestError):
            order_service.update_order_status(order.order_number, "lost")

    def test_cancelled_orders_still_counted_current_behavior(self, customer, product_10):
        order = _create(customer, [product_10.id], 10)
        order_service.update_order_status(order.order_number, "cancelled")

        stats_service.recompute_user_stats(customer.id)
        db.session.commit()

        db.session.refresh(customer)
        assert customer.order_count == 1
        assert customer.total_amount == 10
