# cart_service/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime
from uuid import UUID

from cart_service.domain.order import OrderStatus


class ItemIn(BaseModel):
    """Product added to the cart."""

    product_id: int = Field(..., gt=0, description="Product id (> 0)")
    quantity: int = Field(..., gt=0, description="Quantity to add (> 0)")


class StatusIn(BaseModel):
    """Requested order status."""

    status: OrderStatus


class CartItemOut(BaseModel):
    cart_id: UUID
    product_id: int
    unit_price: Decimal
    quantity: int
    cost: Decimal
    created_at: datetime
    created_by: int
    updated_at: datetime | None = None
    updated_by: int | None = None

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: UUID
    user_id: int
    items: List[CartItemOut]
    total_cost: Decimal
    created_at: datetime
    created_by: int
    updated_at: datetime | None = None
    updated_by: int | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderItemOut(BaseModel):
    order_id: UUID
    product_id: int
    quantity: int
    unit_price: Decimal
    cost: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: UUID
    user_id: int
    status: OrderStatus
    total_cost: Decimal
    items: List[OrderItemOut]
    created_at: datetime
    updated_at: datetime | None = None
    updated_by: int | None = None

    model_config = ConfigDict(from_attributes=True)


class ProductPayload(BaseModel):
    """Price and stock as returned by the product service."""

    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
