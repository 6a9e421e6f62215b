# cart_service/services/cart_service.py
from dataclasses import replace

from sqlalchemy.orm import Session

from cart_service.domain.cart import Cart, CartItem
from cart_service.domain.failures import BadRequest, ValidationError
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.product_client import ProductClient
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Cart use cases.
    commands (add_to_cart) change state
    queries (get_cart) only read
    """

    def __init__(self, db: Session, product_client: ProductClient):
        self.repo = CartRepo(db)
        self.product_client = product_client

    # query
    def get_cart(self, user_id: int) -> Cart:
        cart = self.repo.resolve_with_items(user_id)
        logger.info(f"Cart {cart.id} of user {user_id} has {len(cart.items)} item(s)")
        return cart

    # commands
    def add_to_cart(self, user_id: int, product_id: int, quantity: int) -> CartItem:
        """
        Add `quantity` of a product to the user's cart, creating the cart on
        first use. Repeated additions of the same product merge into one item.

        Raises BadRequest for an invalid quantity or insufficient stock and
        NotFound for an unknown product; the cart is unchanged in both cases.
        """
        if quantity < 1:
            raise BadRequest("quantity must be at least 1")

        logger.info(f"Fetching price and stock of product {product_id}")
        price, stock = self.product_client.get_price_and_stock(product_id)

        try:
            item = CartItem.create(
                cart_id=None,
                product_id=product_id,
                quantity=quantity,
                unit_price=price,
                stock=stock,
                created_by=user_id,
            )

            # fail fast before any write; the store repeats the check atomically
            current = self._current_quantity(user_id, product_id)
            if current > 0:
                replace(item, quantity=current).merge(quantity, price)
            else:
                item.check_stock()

            stored = self.repo.add_or_update_item(item, user_id)
        except ValidationError as e:
            logger.info(f"Rejected adding product {product_id} for user {user_id}: {e.message}")
            raise BadRequest(e.message) from e

        return stored

    def _current_quantity(self, user_id: int, product_id: int) -> int:
        if not self.repo.exists_by_user_id(user_id):
            return 0
        cart = self.repo.resolve_by_user_id(user_id)
        return self.repo.current_quantity(cart.id, product_id)
