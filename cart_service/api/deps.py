# cart_service/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from cart_service.data.database import get_db
from cart_service.services.cart_service import CartService
from cart_service.services.checkout_service import CheckoutService
from cart_service.services.lock_service import LockService
from cart_service.services.order_service import OrderService
from cart_service.services.product_client import ProductClient


def get_product_client() -> ProductClient:
    return ProductClient()


def get_lock_service() -> LockService:
    return LockService()


def get_cart_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
) -> CartService:
    return CartService(db=db, product_client=product_client)


def get_checkout_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
    lock_service: LockService = Depends(get_lock_service),
) -> CheckoutService:
    return CheckoutService(db=db, product_client=product_client, lock_service=lock_service)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)
