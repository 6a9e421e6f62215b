# cart_service/domain/cart.py
"""
Cart aggregate.

Pure in-memory transforms: building items, merging repeated additions of a
product and keeping `cost == money(quantity * unit_price)` after every change.
Persistence lives in CartRepo.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List
from uuid import UUID, uuid4

from cart_service.domain.failures import ValidationError
from cart_service.domain.money import money


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _price(unit_price) -> Decimal:
    # sign is checked before rounding, -0.004 must not pass as -0.00
    if Decimal(str(unit_price)) < 0:
        raise ValidationError("unit price cannot be negative")
    return money(unit_price)


@dataclass
class CartItem:
    cart_id: UUID | None
    product_id: int
    unit_price: Decimal
    quantity: int
    cost: Decimal = Decimal("0.00")
    # snapshot from the product service, never persisted
    stock: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    created_by: int | None = None
    updated_at: datetime | None = None
    updated_by: int | None = None

    @classmethod
    def create(
        cls,
        cart_id: UUID | None,
        product_id: int,
        quantity: int,
        unit_price,
        stock: int | None = None,
        created_by: int | None = None,
    ) -> "CartItem":
        if quantity < 1:
            raise ValidationError("quantity must be at least 1")

        price = _price(unit_price)

        item = cls(
            cart_id=cart_id,
            product_id=product_id,
            unit_price=price,
            quantity=quantity,
            stock=stock,
            created_by=created_by,
        )
        item.recalculate()
        return item

    def recalculate(self) -> None:
        self.cost = money(self.quantity * self.unit_price)

    def check_stock(self, stock: int | None = None) -> None:
        available = self.stock if stock is None else stock
        if available is not None and self.quantity > available:
            raise ValidationError(
                f"insufficient stock for product {self.product_id}: "
                f"requested {self.quantity}, available {available}"
            )

    def merge(self, requested_quantity: int, unit_price, updated_by: int | None = None) -> "CartItem":
        """
        Return a new item holding this item's quantity plus `requested_quantity`,
        priced at the current unit price. The stock snapshot carried by this
        item bounds the merged quantity.
        """
        if requested_quantity < 1:
            raise ValidationError("quantity must be at least 1")

        price = _price(unit_price)

        merged = replace(
            self,
            quantity=self.quantity + requested_quantity,
            unit_price=price,
            updated_at=utcnow(),
            updated_by=updated_by,
        )
        merged.check_stock()
        merged.recalculate()
        return merged


@dataclass
class Cart:
    user_id: int
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    created_by: int | None = None
    updated_at: datetime | None = None
    updated_by: int | None = None
    deleted_at: datetime | None = None
    deleted_by: int | None = None
    # loaded on demand, not part of the cart row
    items: List[CartItem] = field(default_factory=list)

    @classmethod
    def new(cls, user_id: int) -> "Cart":
        return cls(user_id=user_id, created_by=user_id)

    def is_deleted(self) -> bool:
        return self.deleted_at is not None and self.deleted_by is not None

    def attach_items(self, items: Iterable[CartItem]) -> "Cart":
        for item in items:
            if item.cart_id == self.id:
                self.items.append(item)
        return self

    @property
    def total_cost(self) -> Decimal:
        return money(sum((i.cost for i in self.items), Decimal("0.00")))
