# cart_service/domain/order.py
"""
Order aggregate.

An order is the permanent record of a checkout. Item prices are snapshotted
from the cart, totals are always recomputed from the items and the status
only moves one step forward at a time:

    pending -> processing -> shipped -> delivered

`canceled` is a valid stored status but nothing transitions into it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List
from uuid import UUID, uuid4

from cart_service.domain.cart import CartItem, utcnow
from cart_service.domain.failures import Conflict, ValidationError
from cart_service.domain.money import money


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"unknown order status {value!r}, expected one of: {allowed}")


# state -> permitted next states
VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELED: set(),  # terminal, no entry path
}


@dataclass
class OrderItem:
    order_id: UUID
    product_id: int
    quantity: int
    unit_price: Decimal
    cost: Decimal = Decimal("0.00")
    created_at: datetime = field(default_factory=utcnow)
    created_by: int | None = None

    def recalculate(self) -> None:
        self.cost = money(self.quantity * self.unit_price)


@dataclass
class Order:
    user_id: int
    id: UUID = field(default_factory=uuid4)
    total_cost: Decimal = Decimal("0.00")
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    created_by: int | None = None
    updated_at: datetime | None = None
    updated_by: int | None = None
    deleted_at: datetime | None = None
    deleted_by: int | None = None
    items: List[OrderItem] = field(default_factory=list)

    @classmethod
    def build_from_cart(cls, cart_items: Iterable[CartItem], user_id: int) -> "Order":
        order = cls(user_id=user_id, created_by=user_id)
        order.attach_items(
            OrderItem(
                order_id=order.id,
                product_id=ci.product_id,
                quantity=ci.quantity,
                unit_price=ci.unit_price,
                created_at=order.created_at,
                created_by=user_id,
            )
            for ci in cart_items
        )
        return order

    def attach_items(self, items: Iterable[OrderItem]) -> "Order":
        for item in items:
            if item.order_id == self.id:
                self.items.append(item)
        self.recalculate()
        return self

    def recalculate(self) -> None:
        total = Decimal("0.00")
        for item in self.items:
            item.recalculate()
            total += item.cost
        self.total_cost = money(total)

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return new_status in VALID_TRANSITIONS[self.status]

    def update_status(self, new_status, updated_by: int | None = None) -> None:
        target = OrderStatus.parse(new_status)

        if not self.can_transition_to(target):
            raise Conflict(
                "stateChange",
                "order",
                f"cannot change from {self.status.value} to {target.value}",
            )

        self.status = target
        self.updated_at = utcnow()
        self.updated_by = updated_by

    def is_deleted(self) -> bool:
        return self.deleted_at is not None and self.deleted_by is not None
