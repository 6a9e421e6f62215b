# cart_service/repos/order_repo.py
from collections import defaultdict
from typing import List
from uuid import UUID

from sqlalchemy import select, update, delete, func, and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cart_service.data.database import transaction
from cart_service.data.models.cart_item import CartItemModel
from cart_service.data.models.order import OrderModel
from cart_service.data.models.order_item import OrderItemModel
from cart_service.domain.failures import Conflict, InternalError, NotFound
from cart_service.domain.money import money
from cart_service.domain.cart import utcnow
from cart_service.domain.order import Order, OrderItem, OrderStatus
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

orders = OrderModel.__table__
order_items = OrderItemModel.__table__
cart_items = CartItemModel.__table__

# an order counts as deleted only when both audit fields are set
_not_deleted = or_(OrderModel.deleted_at.is_(None), OrderModel.deleted_by.is_(None))


def to_order(row: OrderModel, items: List[OrderItemModel]) -> Order:
    order = Order(
        id=row.id,
        user_id=row.user_id,
        total_cost=money(row.total_cost),
        status=OrderStatus(row.status),
        created_at=row.created_at,
        created_by=row.created_by,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
        deleted_at=row.deleted_at,
        deleted_by=row.deleted_by,
    )
    return order.attach_items(
        OrderItem(
            order_id=i.order_id,
            product_id=i.product_id,
            quantity=i.quantity,
            unit_price=money(i.unit_price),
            cost=money(i.cost),
            created_at=i.created_at,
            created_by=i.created_by,
        )
        for i in items
    )


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def exists_by_id(self, order_id: UUID) -> bool:
        """True if the id is taken, soft-deleted orders included."""
        try:
            return self._id_taken(order_id)
        except SQLAlchemyError as e:
            raise self._internal("check order existence", e) from e

    def create_and_transfer(self, order: Order, cart_id: UUID) -> Order:
        """
        Persist `order` and remove the cart rows it was built from, atomically.

        Cart rows are matched on product and on the quantity that was checked
        out, so a row merged by a concurrent addition is left alone and the
        whole transfer is rejected instead.
        """
        if not order.items:
            raise Conflict("checkout", "order", "an order needs at least one item")

        if self.exists_by_id(order.id):
            raise Conflict("create", "order", f"order {order.id} already exists")

        transferred = or_(
            *[
                and_(
                    cart_items.c.product_id == item.product_id,
                    cart_items.c.quantity == item.quantity,
                )
                for item in order.items
            ]
        )

        try:
            with transaction(self.db):
                self.db.execute(
                    orders.insert().values(
                        id=order.id,
                        user_id=order.user_id,
                        status=order.status.value,
                        total_cost=order.total_cost,
                        created_at=order.created_at,
                        created_by=order.created_by or order.user_id,
                    )
                )
                self.db.execute(
                    order_items.insert(),
                    [
                        {
                            "order_id": order.id,
                            "product_id": i.product_id,
                            "quantity": i.quantity,
                            "unit_price": i.unit_price,
                            "cost": i.cost,
                            "created_at": i.created_at,
                            "created_by": i.created_by or order.user_id,
                        }
                        for i in order.items
                    ],
                )
                removed = self.db.execute(
                    delete(cart_items).where(cart_items.c.cart_id == cart_id, transferred)
                ).rowcount

                if removed != len(order.items):
                    logger.warning(
                        f"Checkout of cart {cart_id} removed {removed} of "
                        f"{len(order.items)} item(s), rolling back order {order.id}"
                    )
                    raise Conflict("checkout", "cart", "cart changed during checkout, please retry")
        except IntegrityError as e:
            # only a concurrent insert of the same id is a conflict, any other
            # constraint violation is a persistence failure
            if self._id_taken_after_failure(order.id):
                logger.warning(f"Order {order.id} was created concurrently: {e.orig}")
                raise Conflict("create", "order", f"order {order.id} already exists") from e
            raise self._internal("create order", e) from e
        except SQLAlchemyError as e:
            raise self._internal("create order", e) from e

        logger.info(
            f"Order {order.id} created from cart {cart_id}: "
            f"{len(order.items)} item(s), total {order.total_cost}"
        )
        return order

    def resolve_by_id(self, order_id: UUID) -> Order:
        try:
            row = self.db.execute(
                select(OrderModel)
                .where(OrderModel.id == order_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if row is None or to_order(row, []).is_deleted():
                raise NotFound("order")
            items = self._items_by_order_id([row.id])
        except SQLAlchemyError as e:
            raise self._internal("resolve order", e) from e

        return to_order(row, items[row.id])

    def resolve_by_user_id(self, user_id: int) -> List[Order]:
        try:
            rows = self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id, _not_deleted)
                .order_by(OrderModel.created_at.desc())
                .execution_options(populate_existing=True)
            ).scalars().all()
            items = self._items_by_order_id([r.id for r in rows])
        except SQLAlchemyError as e:
            raise self._internal("resolve orders", e) from e

        return [to_order(r, items[r.id]) for r in rows]

    def update_status(self, order: Order, previous: OrderStatus) -> Order:
        """
        Persist a transition already applied to `order` by the aggregate.
        The write only lands if the stored status is still `previous`.
        """
        try:
            with transaction(self.db):
                rowcount = self.db.execute(
                    update(orders)
                    .where(orders.c.id == order.id, orders.c.status == previous.value, _not_deleted)
                    .values(
                        status=order.status.value,
                        updated_at=order.updated_at,
                        updated_by=order.updated_by,
                    )
                ).rowcount
        except SQLAlchemyError as e:
            raise self._internal("update order status", e) from e

        if rowcount == 0:
            raise Conflict(
                "stateChange",
                "order",
                f"order {order.id} is no longer {previous.value}",
            )

        logger.info(f"Order {order.id} status {previous.value} -> {order.status.value}")
        return order

    def soft_delete(self, order_id: UUID, deleted_by: int) -> None:
        try:
            with transaction(self.db):
                rowcount = self.db.execute(
                    update(orders)
                    .where(orders.c.id == order_id, orders.c.deleted_at.is_(None))
                    .values(deleted_at=utcnow(), deleted_by=deleted_by)
                ).rowcount
        except SQLAlchemyError as e:
            raise self._internal("delete order", e) from e

        if rowcount == 0:
            raise NotFound("order")

        logger.info(f"Order {order_id} soft-deleted by user {deleted_by}")

    def _id_taken(self, order_id: UUID) -> bool:
        count = self.db.execute(
            select(func.count()).select_from(OrderModel).where(OrderModel.id == order_id)
        ).scalar_one()
        return count > 0

    def _id_taken_after_failure(self, order_id: UUID) -> bool:
        # runs after the failed transaction was rolled back
        try:
            return self._id_taken(order_id)
        except SQLAlchemyError:
            logger.exception(f"OrderRepo could not re-check order {order_id}")
            return False

    def _items_by_order_id(self, order_ids: List[UUID]) -> dict:
        grouped = defaultdict(list)
        if not order_ids:
            return grouped

        rows = self.db.execute(
            select(OrderItemModel)
            .where(OrderItemModel.order_id.in_(order_ids))
            .order_by(OrderItemModel.created_at, OrderItemModel.product_id)
            .execution_options(populate_existing=True)
        ).scalars().all()

        for row in rows:
            grouped[row.order_id].append(row)
        return grouped

    def _internal(self, action: str, err: Exception) -> InternalError:
        logger.exception(f"OrderRepo failed to {action}: {err}")
        return InternalError(f"could not {action}")
