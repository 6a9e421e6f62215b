# import every model so SQLAlchemy registers it on Base.metadata

from cart_service.data.models.cart import CartModel
from cart_service.data.models.cart_item import CartItemModel
from cart_service.data.models.order import OrderModel
from cart_service.data.models.order_item import OrderItemModel

__all__ = ["CartModel", "CartItemModel", "OrderModel", "OrderItemModel"]
