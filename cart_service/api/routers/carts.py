# cart_service/api/routers/carts.py
from fastapi import APIRouter, Depends, Query

from cart_service.api.deps import get_cart_service
from cart_service.domain.schemas import CartItemOut, CartOut, ItemIn
from cart_service.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.post("/items", response_model=CartItemOut, status_code=201)
def add_to_cart(
    payload: ItemIn,
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    """
    Adds a product to the user's cart, creating the cart on first use.
    Adding a product that is already in the cart increases its quantity.
    """
    item = svc.add_to_cart(
        user_id=user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
    )
    return CartItemOut.model_validate(item)


@router.get("", response_model=CartOut)
def get_cart(
    user_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_cart_service),
):
    return CartOut.model_validate(svc.get_cart(user_id))
