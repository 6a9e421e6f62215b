# cart_service/data/models/cart_item.py
from sqlalchemy import Column, Integer, ForeignKey, Numeric, DateTime, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from cart_service.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), primary_key=True)
    product_id = Column(Integer, primary_key=True)

    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    cost = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(Integer, nullable=True)

    cart = relationship("CartModel", back_populates="items")

    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),)
