"""Tests for OrderService: creation, status transitions and stock reconciliation."""

from datetime import timedelta

import pytest

from fakes import stock_of
from orderdesk.errors import DataIntegrityError, InsufficientStockError, NotFoundError, ValidationError
from orderdesk.services.order_service import CreateOrderItemInput, format_order_number


def _create(services, customer, lines, payment_method="cash", **kwargs):
    items = [CreateOrderItemInput(product_id=p.id, quantity=q, unit_price=p.price) for p, q in lines]
    return services.orders.create_order(
        None, customer_id=customer.id, items=items, payment_method=payment_method, **kwargs
    )


@pytest.fixture
def order(services, customer, product_x, product_y):
    return _create(services, customer, [(product_x, 2), (product_y, 1)])


class TestCreateOrder:
    """Order creation, numbering and validation."""

    def test_scenario_a_totals_and_number(self, order, store, product_x, product_y):
        o = order.order
        assert o.order_number == "ORD-2026-0001"
        assert o.subtotal == 40_000
        assert o.tax == 7_600
        assert o.total == 47_600
        assert o.payment_status == "pending"
        assert o.shipping_status == "preparing"
        assert o.payment_date is None

        assert [(i.product_id, i.quantity, i.subtotal) for i in order.items] == [
            (product_x.id, 2, 20_000),
            (product_y.id, 1, 20_000),
        ]
        assert order.customer.name == "MARIA PEREZ"

        # creation does not touch stock
        assert stock_of(store, product_x) == 5
        assert stock_of(store, product_y) == 3

    def test_scenario_c_insufficient_stock_persists_nothing(self, services, db, store, customer, product_x):
        with pytest.raises(InsufficientStockError) as exc:
            with db.transaction() as conn:
                services.orders.create_order(
                    conn,
                    customer_id=customer.id,
                    items=[CreateOrderItemInput(product_id=product_x.id, quantity=10, unit_price=10_000)],
                    payment_method="cash",
                )

        assert exc.value.product_name == "Shampoo X"
        assert exc.value.available == 5
        assert exc.value.required == 10
        assert store.orders == {}
        assert store.items == {}

    def test_duplicate_lines_are_checked_against_summed_quantity(self, services, customer, product_x):
        with pytest.raises(InsufficientStockError) as exc:
            _create(services, customer, [(product_x, 3), (product_x, 3)])
        assert exc.value.required == 6

    def test_numbers_increase_and_are_not_reused(self, services, customer, product_x):
        numbers = [_create(services, customer, [(product_x, 1)]).order.order_number for _ in range(3)]
        assert numbers == ["ORD-2026-0001", "ORD-2026-0002", "ORD-2026-0003"]

        last = services.orders.list_orders(None)[0]
        services.orders.delete_order(None, order_id=last["id"])

        assert _create(services, customer, [(product_x, 1)]).order.order_number == "ORD-2026-0004"

    def test_numbering_restarts_each_year(self, services, customer, product_x, clock):
        _create(services, customer, [(product_x, 1)])
        clock.advance(days=100)
        assert _create(services, customer, [(product_x, 1)]).order.order_number == "ORD-2027-0001"

    def test_numbering_continues_from_existing_orders(self, services, store, customer, product_x):
        first = _create(services, customer, [(product_x, 1)])
        store.orders[first.order.id]["order_number"] = "ORD-2026-0041"
        store.sequences.clear()

        assert _create(services, customer, [(product_x, 1)]).order.order_number == "ORD-2026-0042"

    def test_format_order_number_pads_to_four_digits(self):
        assert format_order_number(2026, 7) == "ORD-2026-0007"
        assert format_order_number(2026, 12345) == "ORD-2026-12345"

    def test_prices_are_snapshotted(self, services, order, product_x):
        services.products.update_product(None, product_x.id, price=99_000)

        detail = services.orders.get_order(None, order.order.id)
        assert detail.order.subtotal == 40_000
        assert detail.items[0].unit_price == 10_000

    def test_empty_items_rejected(self, services, customer):
        with pytest.raises(ValidationError) as exc:
            services.orders.create_order(None, customer_id=customer.id, items=[], payment_method="cash")
        assert "At least one product is required." in exc.value.errors

    def test_payment_method_required_and_enumerated(self, services, customer, product_x):
        with pytest.raises(ValidationError) as exc:
            _create(services, customer, [(product_x, 1)], payment_method="")
        assert "Payment method is required." in exc.value.errors

        with pytest.raises(ValidationError) as exc:
            _create(services, customer, [(product_x, 1)], payment_method="bitcoin")
        assert "Invalid payment method: 'bitcoin'" in exc.value.errors

    def test_malformed_lines_collect_all_messages(self, services, customer):
        items = [CreateOrderItemInput(product_id=0, quantity=-1, unit_price=-5)]
        with pytest.raises(ValidationError) as exc:
            services.orders.create_order(None, customer_id=customer.id, items=items, payment_method="cash")
        assert len(exc.value.errors) == 3

    def test_unknown_customer(self, services, product_x):
        items = [CreateOrderItemInput(product_id=product_x.id, quantity=1, unit_price=1)]
        with pytest.raises(NotFoundError) as exc:
            services.orders.create_order(None, customer_id=42, items=items, payment_method="cash")
        assert exc.value.entity == "customer"

    def test_unknown_products_are_listed(self, services, customer, product_x):
        items = [
            CreateOrderItemInput(product_id=product_x.id, quantity=1, unit_price=1),
            CreateOrderItemInput(product_id=999, quantity=1, unit_price=1),
            CreateOrderItemInput(product_id=998, quantity=1, unit_price=1),
        ]
        with pytest.raises(NotFoundError) as exc:
            services.orders.create_order(None, customer_id=customer.id, items=items, payment_method="cash")
        assert exc.value.entity == "product"
        assert exc.value.ids == [998, 999]

    def test_notes_are_trimmed(self, services, customer, product_x):
        detail = _create(services, customer, [(product_x, 1)], notes="  leave at door ")
        assert detail.order.notes == "leave at door"


class TestPromoOrders:
    """PromoMix order type."""

    @pytest.fixture
    def floor_cleaner(self, services):
        return services.products.create_product(None, name="Limpia Pisos", category="Home", price=41_400, stock=20)

    def test_promo_order_above_minimum(self, services, customer, floor_cleaner):
        detail = _create(services, customer, [(floor_cleaner, 8)], order_type="promomix")
        assert detail.order.order_type == "promomix"
        assert detail.order.subtotal == 331_200

    def test_promo_order_below_minimum(self, services, customer, floor_cleaner):
        with pytest.raises(ValidationError) as exc:
            _create(services, customer, [(floor_cleaner, 2)], order_type="promomix")
        assert "minimum" in exc.value.errors[0]

    def test_promo_order_with_ineligible_product(self, services, customer, product_x):
        with pytest.raises(ValidationError) as exc:
            _create(services, customer, [(product_x, 1)], order_type="promomix")
        assert exc.value.errors == ["Product not eligible for PromoMix: Shampoo X"]


class TestUpdateStatus:
    """Payment/shipping transitions and their stock side effects."""

    def test_scenario_b_pay_deducts_stock(self, services, order, store, product_x, product_y, clock):
        result = services.orders.update_status(None, order_id=order.order.id, payment_status="paid")

        assert stock_of(store, product_x) == 3
        assert stock_of(store, product_y) == 2
        assert result.order.order.payment_status == "paid"
        assert result.order.order.payment_date == clock.now
        assert result.stock_effect == "deduct"
        assert result.message == "Order marked as paid. Stock deducted."

    def test_scenario_d_revert_restores_stock(self, services, order, store, product_x, product_y):
        services.orders.update_status(None, order_id=order.order.id, payment_status="paid")
        result = services.orders.update_status(None, order_id=order.order.id, payment_status="pending")

        assert stock_of(store, product_x) == 5
        assert stock_of(store, product_y) == 3
        assert result.order.order.payment_date is None
        assert result.message == "Payment status reverted. Stock restored."

    def test_paid_to_partial_restores_and_keeps_date(self, services, order, store, product_x, clock):
        services.orders.update_status(None, order_id=order.order.id, payment_status="paid")
        paid_at = clock.now
        clock.advance(hours=1)

        result = services.orders.update_status(None, order_id=order.order.id, payment_status="partial")
        assert stock_of(store, product_x) == 5
        assert result.order.order.payment_date == paid_at

    def test_pending_partial_never_touches_stock(self, services, order, store, product_x):
        services.orders.update_status(None, order_id=order.order.id, payment_status="partial")
        services.orders.update_status(None, order_id=order.order.id, payment_status="pending")
        assert stock_of(store, product_x) == 5

    def test_round_trip_conserves_stock(self, services, order, store, product_x, product_y):
        for status in ("paid", "pending", "paid", "partial", "paid", "pending"):
            services.orders.update_status(None, order_id=order.order.id, payment_status=status)
        assert stock_of(store, product_x) == 5
        assert stock_of(store, product_y) == 3

    def test_same_status_is_a_noop(self, services, order, store, product_x, clock):
        services.orders.update_status(None, order_id=order.order.id, payment_status="paid", shipping_status="shipped")
        paid_at = clock.now
        clock.advance(hours=2)

        result = services.orders.update_status(
            None, order_id=order.order.id, payment_status="paid", shipping_status="shipped"
        )
        assert result.message == "No changes."
        assert result.stock_effect == "none"
        assert result.order.order.payment_date == paid_at
        assert result.order.order.shipping_date == paid_at
        assert stock_of(store, product_x) == 3

    def test_stock_floor_aborts_whole_transition(self, services, db, order, store, product_x, product_y):
        # sold elsewhere since the order was created
        store.products[product_y.id]["stock"] = 0

        with pytest.raises(InsufficientStockError) as exc:
            with db.transaction() as conn:
                services.orders.update_status(conn, order_id=order.order.id, payment_status="paid")

        assert exc.value.product_id == product_y.id
        assert exc.value.available == 0
        assert stock_of(store, product_x) == 5
        assert stock_of(store, product_y) == 0
        assert store.orders[order.order.id]["payment_status"] == "pending"
        assert store.orders[order.order.id]["payment_date"] is None

    def test_failed_decrement_rolls_back_earlier_lines(
        self, services, db, order, store, product_x, product_y, monkeypatch
    ):
        repo = services.orders.product_repo
        real = repo.decrease_stock

        def lose_race(conn, *, product_id, qty):
            if product_id == product_y.id:
                return False
            return real(conn, product_id=product_id, qty=qty)

        monkeypatch.setattr(repo, "decrease_stock", lose_race)

        with pytest.raises(InsufficientStockError):
            with db.transaction() as conn:
                services.orders.update_status(conn, order_id=order.order.id, payment_status="paid")

        assert db.rollbacks == 1
        assert stock_of(store, product_x) == 5
        assert store.orders[order.order.id]["payment_status"] == "pending"

    def test_missing_product_is_an_integrity_failure(self, services, order, store, product_y):
        del store.products[product_y.id]
        with pytest.raises(DataIntegrityError):
            services.orders.update_status(None, order_id=order.order.id, payment_status="paid")

    def test_scenario_e_delivered_backfills_shipping_date(self, services, order, clock):
        result = services.orders.update_status(None, order_id=order.order.id, shipping_status="delivered")
        o = result.order.order
        assert o.shipping_date == clock.now
        assert o.delivery_date == clock.now
        assert result.stock_effect == "none"

    def test_shipping_then_delivered_keeps_shipping_date(self, services, order, clock):
        services.orders.update_status(None, order_id=order.order.id, shipping_status="shipped")
        shipped_at = clock.now
        clock.advance(days=2)

        o = services.orders.update_status(None, order_id=order.order.id, shipping_status="delivered").order.order
        assert o.shipping_date == shipped_at
        assert o.delivery_date == shipped_at + timedelta(days=2)

    def test_back_to_preparing_clears_dates(self, services, order):
        services.orders.update_status(None, order_id=order.order.id, shipping_status="delivered")
        o = services.orders.update_status(None, order_id=order.order.id, shipping_status="preparing").order.order
        assert o.shipping_date is None
        assert o.delivery_date is None

    def test_shipping_change_never_touches_stock(self, services, order, store, product_x):
        for status in ("shipped", "delivered", "preparing"):
            services.orders.update_status(None, order_id=order.order.id, shipping_status=status)
        assert stock_of(store, product_x) == 5

    def test_invalid_status_rejected(self, services, order):
        with pytest.raises(ValidationError):
            services.orders.update_status(None, order_id=order.order.id, payment_status="refunded")

    def test_unknown_order(self, services):
        with pytest.raises(NotFoundError):
            services.orders.update_status(None, order_id=123, payment_status="paid")


class TestDeleteOrder:
    """Deleting orders restores stock only when they were paid."""

    def test_delete_paid_order_restores_stock(self, services, order, store, product_x, product_y):
        services.orders.update_status(None, order_id=order.order.id, payment_status="paid")

        message = services.orders.delete_order(None, order_id=order.order.id)

        assert message == "Order ORD-2026-0001 deleted. Stock restored."
        assert stock_of(store, product_x) == 5
        assert stock_of(store, product_y) == 3
        assert store.orders == {}
        assert store.items == {}

    def test_delete_unpaid_order_leaves_stock(self, services, order, store, product_x):
        services.orders.update_status(None, order_id=order.order.id, payment_status="partial")
        assert services.orders.delete_order(None, order_id=order.order.id) == "Order ORD-2026-0001 deleted."
        assert stock_of(store, product_x) == 5

    def test_delete_unknown_order(self, services):
        with pytest.raises(NotFoundError):
            services.orders.delete_order(None, order_id=5)


class TestInvoiceAndQueries:
    """Invoice number edits and order listing."""

    def test_set_invoice_number_trims(self, services, order):
        detail = services.orders.set_invoice_number(None, order_id=order.order.id, invoice_number="  F-001 ")
        assert detail.order.invoice_number == "F-001"

    def test_blank_invoice_number_clears(self, services, order):
        services.orders.set_invoice_number(None, order_id=order.order.id, invoice_number="F-001")
        detail = services.orders.set_invoice_number(None, order_id=order.order.id, invoice_number="   ")
        assert detail.order.invoice_number is None

    def test_invoice_number_leaves_status_alone(self, services, order, store, product_x):
        detail = services.orders.set_invoice_number(None, order_id=order.order.id, invoice_number="F-9")
        assert detail.order.payment_status == "pending"
        assert stock_of(store, product_x) == 5

    def test_set_invoice_number_unknown_order(self, services):
        with pytest.raises(NotFoundError):
            services.orders.set_invoice_number(None, order_id=77, invoice_number="F-1")

    def test_list_orders_filters(self, services, customer, product_x, clock):
        clock.advance(days=-10)
        old = _create(services, customer, [(product_x, 1)])
        clock.advance(days=10)
        recent = _create(services, customer, [(product_x, 1)])
        services.orders.update_status(None, order_id=recent.order.id, payment_status="paid")

        assert [r["id"] for r in services.orders.list_orders(None, search="maria")] == [recent.order.id, old.order.id]
        assert [r["id"] for r in services.orders.list_orders(None, payment_status="paid")] == [recent.order.id]
        assert [r["id"] for r in services.orders.list_orders(None, period="week")] == [recent.order.id]
        assert [r["id"] for r in services.orders.list_orders(None, search="0001")] == [old.order.id]

    def test_list_orders_rejects_bad_filters(self, services):
        with pytest.raises(ValidationError):
            services.orders.list_orders(None, payment_status="nope", period="year")
