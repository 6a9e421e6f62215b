# cart_service/services/order_service.py
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from cart_service.domain.failures import NotFound
from cart_service.domain.order import Order
from cart_service.repos.order_repo import OrderRepo
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order queries and status changes. Orders are created by CheckoutService.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_order(self, order_id: UUID, user_id: int) -> Order:
        order = self.repo.resolve_by_id(order_id)

        # someone else's order is reported as missing
        if order.user_id != user_id:
            raise NotFound("order")

        return order

    def list_orders(self, user_id: int) -> List[Order]:
        return self.repo.resolve_by_user_id(user_id)

    def update_status(self, order_id: UUID, user_id: int, new_status) -> Order:
        """
        Move an order one step forward in its lifecycle.
        Raises Conflict for a transition the state machine does not allow.
        """
        order = self.get_order(order_id, user_id)
        previous = order.status

        order.update_status(new_status, updated_by=user_id)

        return self.repo.update_status(order, previous)
