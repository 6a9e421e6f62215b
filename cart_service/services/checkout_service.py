# cart_service/services/checkout_service.py

"""
Checkout: turn the user's cart into an order.

Steps:
1. take the per-user checkout lock (one checkout at a time per user)
2. load the cart with its items, reject an empty cart
3. re-check stock of every item at the product service, report all
   insufficient products at once
4. build the order from the cart items
5. in one transaction: insert order + order items, delete exactly the
   transferred cart rows. Any failure rolls everything back and the cart
   stays as it was.
6. after commit, send the order-placed notification

Business-rule failures (empty cart, stock) are raised before anything is
written. Persistence failures are not retried here, the caller re-submits.
"""

from uuid import uuid4

from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from cart_service.domain.failures import BadRequest, Conflict, InternalError, NotFound
from cart_service.domain.order import Order
from cart_service.repos.cart_repo import CartRepo
from cart_service.repos.order_repo import OrderRepo
from cart_service.services.lock_service import LockService
from cart_service.services.notification_service import NotificationService
from cart_service.services.product_client import ProductClient
from cart_service.utils.settings import CHECKOUT_LOCK_TTL_SECONDS
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
    ):
        self.cart_repo = CartRepo(db)
        self.order_repo = OrderRepo(db)
        self.product_client = product_client
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()

    def checkout(self, user_id: int) -> Order:
        token = uuid4().hex

        try:
            locked = self.lock_service.acquire_checkout_lock(
                user_id=user_id,
                token=token,
                ttl=CHECKOUT_LOCK_TTL_SECONDS,
            )
        except RedisError as e:
            logger.error(f"Checkout lock unavailable for user {user_id}: {e}")
            raise InternalError("checkout is temporarily unavailable") from e

        if not locked:
            raise Conflict("checkout", "cart", "a checkout for this cart is already in progress")

        try:
            order = self._checkout(user_id)
        finally:
            self._release_lock(user_id, token)

        self._notify(order)
        return order

    def _checkout(self, user_id: int) -> Order:
        try:
            cart = self.cart_repo.resolve_with_items(user_id)
        except NotFound as e:
            raise BadRequest("cart is empty") from e

        if not cart.items:
            raise BadRequest("cart is empty")

        logger.info(f"Checkout of cart {cart.id}: validating stock of {len(cart.items)} item(s)")

        insufficient = []
        for item in cart.items:
            try:
                _, stock = self.product_client.get_price_and_stock(item.product_id)
            except NotFound:
                stock = 0

            item.stock = stock
            if stock < item.quantity:
                insufficient.append(str(item.product_id))

        if insufficient:
            raise BadRequest(
                f"insufficient stock for products with IDs: {', '.join(insufficient)}"
            )

        order = Order.build_from_cart(cart.items, user_id)
        return self.order_repo.create_and_transfer(order, cart.id)

    def _release_lock(self, user_id: int, token: str) -> None:
        try:
            self.lock_service.release_checkout_lock(user_id=user_id, token=token)
        except RedisError as e:
            # the lock still expires after CHECKOUT_LOCK_TTL_SECONDS
            logger.warning(f"Failed to release checkout lock of user {user_id}: {e}")

    def _notify(self, order: Order) -> None:
        try:
            self.notification_service.send_order_placed(
                order.user_id, str(order.id), str(order.total_cost)
            )
        except Exception as e:
            # the order is committed, a lost notification must not fail the checkout
            logger.warning(f"Order {order.id} placed but notification failed: {e}")
