# cart_service/repos/cart_repo.py
from dataclasses import replace
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import select, update, func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cart_service.data.database import transaction
from cart_service.data.models.cart import CartModel
from cart_service.data.models.cart_item import CartItemModel
from cart_service.domain.cart import Cart, CartItem, utcnow
from cart_service.domain.failures import Conflict, InternalError, NotFound
from cart_service.domain.money import money
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

carts = CartModel.__table__
cart_items = CartItemModel.__table__

# a cart counts as deleted only when both audit fields are set
_not_deleted = or_(CartModel.deleted_at.is_(None), CartModel.deleted_by.is_(None))


def dialect_insert(db: Session):
    """INSERT construct with ON CONFLICT support for the bound database."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"upserts are not implemented for the {name} dialect")


def to_cart(row: CartModel) -> Cart:
    return Cart(
        id=row.id,
        user_id=row.user_id,
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
        deleted_at=row.deleted_at,
        deleted_by=row.deleted_by,
    )


def to_cart_item(row: CartItemModel) -> CartItem:
    return CartItem(
        cart_id=row.cart_id,
        product_id=row.product_id,
        unit_price=money(row.unit_price),
        quantity=row.quantity,
        cost=money(row.cost),
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
    )


def cart_item_values(item: CartItem, cart_id: UUID, user_id: int) -> dict:
    return {
        "cart_id": cart_id,
        "product_id": item.product_id,
        "unit_price": item.unit_price,
        "quantity": item.quantity,
        "cost": item.cost,
        "created_at": item.created_at,
        "created_by": item.created_by or user_id,
    }


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    # =====================================================
    # QUERIES
    # =====================================================
    def resolve_by_user_id(self, user_id: int) -> Cart:
        try:
            rows = self.db.execute(
                select(CartModel)
                .where(CartModel.user_id == user_id, _not_deleted)
                .order_by(CartModel.created_at.desc())
                .execution_options(populate_existing=True)
            ).scalars().all()
        except SQLAlchemyError as e:
            raise self._internal("resolve cart", e) from e

        for row in rows:
            cart = to_cart(row)
            if not cart.is_deleted():
                return cart

        raise NotFound("cart")

    def exists_by_user_id(self, user_id: int) -> bool:
        try:
            count = self.db.execute(
                select(func.count())
                .select_from(CartModel)
                .where(CartModel.user_id == user_id, _not_deleted)
            ).scalar_one()
        except SQLAlchemyError as e:
            raise self._internal("check cart existence", e) from e

        return count > 0

    def resolve_items_by_cart_id(self, cart_ids: Iterable[UUID]) -> List[CartItem]:
        ids = list(cart_ids)
        if not ids:
            return []

        try:
            rows = self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id.in_(ids))
                .order_by(CartItemModel.created_at, CartItemModel.product_id)
                .execution_options(populate_existing=True)
            ).scalars().all()
        except SQLAlchemyError as e:
            raise self._internal("resolve cart items", e) from e

        return [to_cart_item(r) for r in rows]

    def resolve_with_items(self, user_id: int) -> Cart:
        cart = self.resolve_by_user_id(user_id)
        return cart.attach_items(self.resolve_items_by_cart_id([cart.id]))

    def current_quantity(self, cart_id: UUID, product_id: int) -> int:
        try:
            quantity = self.db.execute(
                select(CartItemModel.quantity).where(
                    CartItemModel.cart_id == cart_id,
                    CartItemModel.product_id == product_id,
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._internal("read item quantity", e) from e

        return quantity or 0

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_cart(self, cart: Cart) -> Cart:
        if self.exists_by_user_id(cart.user_id):
            raise Conflict("create", "cart", f"user {cart.user_id} already has a cart")

        try:
            with transaction(self.db):
                self.db.execute(
                    carts.insert().values(
                        id=cart.id,
                        user_id=cart.user_id,
                        created_at=cart.created_at,
                        created_by=cart.created_by or cart.user_id,
                    )
                )
                if cart.items:
                    self.db.execute(
                        cart_items.insert(),
                        [cart_item_values(i, cart.id, cart.user_id) for i in cart.items],
                    )
        except IntegrityError as e:
            # lost the race against a concurrent create for the same user
            logger.warning(f"Cart creation for user {cart.user_id} rejected: {e.orig}")
            raise Conflict("create", "cart", f"user {cart.user_id} already has a cart") from e
        except SQLAlchemyError as e:
            raise self._internal("create cart", e) from e

        for item in cart.items:
            item.cart_id = cart.id

        logger.info(f"Cart {cart.id} created for user {cart.user_id} with {len(cart.items)} item(s)")
        return cart

    def add_or_update_item(self, item: CartItem, user_id: int) -> CartItem:
        """
        Merge `item` into the user's cart in one transaction.

        The cart is created if it does not exist yet, then the item row is
        upserted with `quantity = quantity + requested`. The database
        serializes concurrent writers on the (cart, product) key, so the
        merged quantity returned by the upsert already includes every
        committed addition. The aggregate then checks stock and recomputes
        the cost; a ValidationError rolls the whole unit back.
        """
        insert = dialect_insert(self.db)

        try:
            with transaction(self.db):
                cart_id = self._get_or_create_cart_id(user_id)

                stmt = insert(cart_items).values(**cart_item_values(item, cart_id, user_id))
                stmt = stmt.on_conflict_do_update(
                    index_elements=[cart_items.c.cart_id, cart_items.c.product_id],
                    set_={
                        "quantity": cart_items.c.quantity + stmt.excluded.quantity,
                        "unit_price": stmt.excluded.unit_price,
                        "updated_at": utcnow(),
                        "updated_by": user_id,
                    },
                ).returning(
                    cart_items.c.quantity,
                    cart_items.c.created_at,
                    cart_items.c.created_by,
                )
                row = self.db.execute(stmt).one()

                previous = row.quantity - item.quantity
                base = replace(
                    item,
                    cart_id=cart_id,
                    created_at=row.created_at,
                    created_by=row.created_by,
                )

                if previous > 0:
                    stored = replace(base, quantity=previous).merge(
                        item.quantity, item.unit_price, updated_by=user_id
                    )
                else:
                    stored = base
                    stored.check_stock()
                    stored.recalculate()

                self.db.execute(
                    update(cart_items)
                    .where(
                        cart_items.c.cart_id == cart_id,
                        cart_items.c.product_id == item.product_id,
                    )
                    .values(cost=stored.cost)
                )
        except SQLAlchemyError as e:
            raise self._internal("add item to cart", e) from e

        logger.info(
            f"Cart {stored.cart_id}: product {stored.product_id} quantity now "
            f"{stored.quantity}, cost {stored.cost}"
        )
        return stored

    def soft_delete(self, cart_id: UUID, deleted_by: int) -> None:
        try:
            with transaction(self.db):
                rowcount = self.db.execute(
                    update(carts)
                    .where(carts.c.id == cart_id, carts.c.deleted_at.is_(None))
                    .values(deleted_at=utcnow(), deleted_by=deleted_by)
                ).rowcount
        except SQLAlchemyError as e:
            raise self._internal("delete cart", e) from e

        if rowcount == 0:
            raise NotFound("cart")

        logger.info(f"Cart {cart_id} soft-deleted by user {deleted_by}")

    # =====================================================
    # HELPERS
    # =====================================================
    def _get_or_create_cart_id(self, user_id: int) -> UUID:
        # must run inside the caller's transaction
        insert = dialect_insert(self.db)
        cart = Cart.new(user_id)

        self.db.execute(
            insert(carts)
            .values(
                id=cart.id,
                user_id=user_id,
                created_at=cart.created_at,
                created_by=user_id,
            )
            .on_conflict_do_nothing(
                index_elements=[carts.c.user_id],
                index_where=carts.c.deleted_at.is_(None),
            )
        )

        return self.db.execute(
            select(carts.c.id).where(carts.c.user_id == user_id, carts.c.deleted_at.is_(None))
        ).scalar_one()

    def _internal(self, action: str, err: Exception) -> InternalError:
        logger.exception(f"CartRepo failed to {action}: {err}")
        return InternalError(f"could not {action}")
