# cart_service/api/routers/orders.py
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from cart_service.api.deps import get_checkout_service, get_order_service
from cart_service.domain.schemas import OrderOut, StatusIn
from cart_service.services.checkout_service import CheckoutService
from cart_service.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    user_id: int = Query(..., gt=0),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Turns the user's whole cart into a pending order.
    """
    return OrderOut.model_validate(svc.checkout(user_id))


@router.get("", response_model=List[OrderOut])
def list_orders(
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    return [OrderOut.model_validate(o) for o in svc.list_orders(user_id)]


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: UUID,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    return OrderOut.model_validate(svc.get_order(order_id, user_id))


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: UUID,
    payload: StatusIn,
    user_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_order_service),
):
    """
    Moves the order one step forward: pending, processing, shipped, delivered.
    """
    return OrderOut.model_validate(svc.update_status(order_id, user_id, payload.status))
