"""Tests for CartRepo against a SQLite database."""

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from cart_service.domain.cart import Cart, CartItem
from cart_service.domain.failures import Conflict, InternalError, NotFound, ValidationError
from cart_service.repos.cart_repo import CartRepo


def _item(product_id=1, quantity=2, price="10.00", stock=None):
    return CartItem.create(None, product_id, quantity, price, stock=stock, created_by=7)


@pytest.fixture
def repo(db):
    return CartRepo(db)


class TestResolve:
    def test_missing_cart_is_not_found(self, repo):
        with pytest.raises(NotFound):
            repo.resolve_by_user_id(7)
        assert repo.exists_by_user_id(7) is False

    def test_resolve_created_cart(self, repo):
        cart = repo.create_cart(Cart.new(7))
        found = repo.resolve_by_user_id(7)
        assert found.id == cart.id
        assert found.user_id == 7
        assert repo.exists_by_user_id(7) is True

    def test_soft_deleted_cart_is_not_found(self, repo):
        cart = repo.create_cart(Cart.new(7))
        repo.soft_delete(cart.id, deleted_by=7)

        with pytest.raises(NotFound):
            repo.resolve_by_user_id(7)
        assert repo.exists_by_user_id(7) is False

    def test_soft_delete_twice_is_not_found(self, repo):
        cart = repo.create_cart(Cart.new(7))
        repo.soft_delete(cart.id, deleted_by=7)
        with pytest.raises(NotFound):
            repo.soft_delete(cart.id, deleted_by=7)

    def test_empty_id_list_skips_the_query(self, repo, db):
        with patch.object(db, "execute") as execute:
            assert repo.resolve_items_by_cart_id([]) == []
        execute.assert_not_called()

    def test_current_quantity_without_row_is_zero(self, repo):
        cart = repo.create_cart(Cart.new(7))
        assert repo.current_quantity(cart.id, 99) == 0


class TestCreateCart:
    def test_creates_header_and_items(self, repo):
        cart = Cart.new(7)
        cart.items = [_item(1, 2, "10.00"), _item(2, 1, "5.00")]

        repo.create_cart(cart)

        stored = repo.resolve_with_items(7)
        assert {(i.product_id, i.quantity, i.cost) for i in stored.items} == {
            (1, 2, Decimal("20.00")),
            (2, 1, Decimal("5.00")),
        }
        assert all(i.cart_id == cart.id for i in stored.items)

    def test_second_cart_for_user_conflicts(self, repo):
        repo.create_cart(Cart.new(7))
        with pytest.raises(Conflict):
            repo.create_cart(Cart.new(7))

    def test_unique_index_backs_up_existence_check(self, repo):
        repo.create_cart(Cart.new(7))
        with patch.object(repo, "exists_by_user_id", return_value=False):
            with pytest.raises(Conflict):
                repo.create_cart(Cart.new(7))
        assert repo.resolve_by_user_id(7) is not None

    def test_new_cart_allowed_after_soft_delete(self, repo):
        first = repo.create_cart(Cart.new(7))
        repo.soft_delete(first.id, deleted_by=7)

        second = repo.create_cart(Cart.new(7))

        assert repo.resolve_by_user_id(7).id == second.id


class TestAddOrUpdateItem:
    def test_creates_cart_on_first_item(self, repo):
        stored = repo.add_or_update_item(_item(), user_id=7)

        cart = repo.resolve_with_items(7)
        assert stored.cart_id == cart.id
        assert [(i.product_id, i.quantity) for i in cart.items] == [(1, 2)]

    def test_reuses_existing_cart(self, repo):
        cart = repo.create_cart(Cart.new(7))
        stored = repo.add_or_update_item(_item(), user_id=7)
        assert stored.cart_id == cart.id

    def test_repeated_add_merges_into_one_row(self, repo):
        repo.add_or_update_item(_item(quantity=2, stock=10), user_id=7)
        stored = repo.add_or_update_item(_item(quantity=3, stock=10), user_id=7)

        assert stored.quantity == 5
        assert stored.cost == Decimal("50.00")

        cart = repo.resolve_with_items(7)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5
        assert cart.items[0].cost == Decimal("50.00")
        assert repo.current_quantity(cart.id, 1) == 5

    def test_merge_takes_latest_price(self, repo):
        repo.add_or_update_item(_item(quantity=1, price="10.00"), user_id=7)
        stored = repo.add_or_update_item(_item(quantity=1, price="12.00"), user_id=7)

        assert stored.unit_price == Decimal("12.00")
        assert repo.resolve_with_items(7).items[0].cost == Decimal("24.00")

    def test_merge_beyond_stock_rolls_back(self, repo):
        repo.add_or_update_item(_item(quantity=4, stock=5), user_id=7)

        with pytest.raises(ValidationError):
            repo.add_or_update_item(_item(quantity=2, stock=5), user_id=7)

        cart = repo.resolve_with_items(7)
        assert cart.items[0].quantity == 4
        assert cart.items[0].cost == Decimal("40.00")

    def test_first_item_beyond_stock_leaves_no_cart(self, repo):
        with pytest.raises(ValidationError):
            repo.add_or_update_item(_item(quantity=6, stock=5), user_id=7)

        assert repo.exists_by_user_id(7) is False

    def test_different_products_get_separate_rows(self, repo):
        repo.add_or_update_item(_item(product_id=1), user_id=7)
        repo.add_or_update_item(_item(product_id=2), user_id=7)

        assert {i.product_id for i in repo.resolve_with_items(7).items} == {1, 2}

    def test_database_failure_is_internal_error(self, repo, db):
        with patch.object(db, "execute", side_effect=OperationalError("INSERT", {}, Exception("down"))):
            with pytest.raises(InternalError) as exc:
                repo.add_or_update_item(_item(), user_id=7)

        assert "down" not in exc.value.message

    def test_carts_of_other_users_are_untouched(self, repo):
        repo.add_or_update_item(_item(), user_id=7)
        repo.add_or_update_item(_item(quantity=1), user_id=8)

        assert repo.resolve_with_items(7).items[0].quantity == 2
        assert repo.resolve_with_items(8).items[0].quantity == 1
        assert repo.resolve_by_user_id(7).id != repo.resolve_by_user_id(8).id


def test_items_by_cart_ids_filters_by_cart(repo):
    repo.add_or_update_item(_item(product_id=1), user_id=7)
    repo.add_or_update_item(_item(product_id=2), user_id=8)

    cart = repo.resolve_by_user_id(7)
    items = repo.resolve_items_by_cart_id([cart.id, uuid4()])

    assert [i.product_id for i in items] == [1]
