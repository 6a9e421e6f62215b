"""Tests for the Cart aggregate: item creation, merging and cost rules."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from cart_service.domain.cart import Cart, CartItem
from cart_service.domain.failures import ValidationError


def _make_item(quantity=2, price="10.00", stock=None):
    return CartItem.create(
        cart_id=uuid4(),
        product_id=1,
        quantity=quantity,
        unit_price=price,
        stock=stock,
        created_by=7,
    )


class TestCartItemCreate:
    def test_cost_is_quantity_times_price(self):
        item = _make_item(quantity=3, price="19.99")
        assert item.cost == Decimal("59.97")

    def test_cost_is_rounded_to_cents(self):
        item = _make_item(quantity=3, price="0.333")
        assert item.unit_price == Decimal("0.33")
        assert item.cost == Decimal("0.99")

    @pytest.mark.parametrize(
        "quantity,price",
        [(1, "0.01"), (7, "3.33"), (13, "1234.56"), (250, "0.07")],
    )
    def test_cost_invariant(self, quantity, price):
        item = _make_item(quantity=quantity, price=price)
        expected = (Decimal(quantity) * Decimal(price)).quantize(Decimal("0.01"))
        assert item.cost == expected

    def test_rejects_zero_quantity(self):
        with pytest.raises(ValidationError):
            _make_item(quantity=0)

    def test_rejects_negative_price(self):
        with pytest.raises(ValidationError):
            _make_item(price="-1.00")

    @pytest.mark.parametrize("price", ["-0.004", "-0.001", Decimal("-0.0049")])
    def test_rejects_sub_cent_negative_price(self, price):
        with pytest.raises(ValidationError):
            _make_item(price=price)

    def test_free_item_is_allowed(self):
        item = _make_item(price="0")
        assert item.cost == Decimal("0.00")


class TestCartItemMerge:
    def test_merge_sums_quantities(self):
        merged = _make_item(quantity=2, stock=10).merge(3, "10.00")
        assert merged.quantity == 5
        assert merged.cost == Decimal("50.00")

    def test_merge_uses_current_price(self):
        merged = _make_item(quantity=2, price="10.00", stock=10).merge(1, "12.50")
        assert merged.unit_price == Decimal("12.50")
        assert merged.cost == Decimal("37.50")

    def test_merge_returns_new_item(self):
        item = _make_item(quantity=2, stock=10)
        item.merge(3, "10.00")
        assert item.quantity == 2

    def test_merge_up_to_stock_is_allowed(self):
        merged = _make_item(quantity=4, stock=5).merge(1, "10.00")
        assert merged.quantity == 5

    def test_merge_beyond_stock_fails(self):
        with pytest.raises(ValidationError, match="insufficient stock"):
            _make_item(quantity=4, stock=5).merge(2, "10.00")

    def test_merge_rejects_non_positive_quantity(self):
        with pytest.raises(ValidationError):
            _make_item(stock=10).merge(0, "10.00")

    @pytest.mark.parametrize("price", ["-1.00", "-0.004"])
    def test_merge_rejects_negative_price(self, price):
        with pytest.raises(ValidationError):
            _make_item(stock=10).merge(1, price)

    def test_merge_without_stock_snapshot_is_unbounded(self):
        merged = _make_item(quantity=2).merge(100, "10.00")
        assert merged.quantity == 102

    def test_merge_records_updater(self):
        merged = _make_item(stock=10).merge(1, "10.00", updated_by=9)
        assert merged.updated_by == 9
        assert merged.updated_at is not None


class TestCheckStock:
    def test_explicit_stock_overrides_snapshot(self):
        item = _make_item(quantity=3, stock=10)
        with pytest.raises(ValidationError):
            item.check_stock(2)

    def test_within_stock_passes(self):
        _make_item(quantity=3, stock=3).check_stock()


class TestCart:
    def test_new_cart_is_not_deleted(self):
        assert not Cart.new(user_id=1).is_deleted()

    def test_deleted_needs_both_audit_fields(self):
        cart = Cart.new(user_id=1)
        cart.deleted_at = datetime.now(timezone.utc)
        assert not cart.is_deleted()

        cart.deleted_by = 1
        assert cart.is_deleted()

    def test_attach_items_only_keeps_own_items(self):
        cart = Cart.new(user_id=1)
        own = CartItem.create(cart.id, 1, 1, "1.00")
        other = CartItem.create(uuid4(), 2, 1, "1.00")

        cart.attach_items([own, other])

        assert cart.items == [own]

    def test_total_cost(self):
        cart = Cart.new(user_id=1)
        cart.attach_items(
            [
                CartItem.create(cart.id, 1, 2, "10.00"),
                CartItem.create(cart.id, 2, 1, "5.00"),
            ]
        )
        assert cart.total_cost == Decimal("25.00")
