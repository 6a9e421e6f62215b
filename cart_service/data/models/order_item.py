# cart_service/data/models/order_item.py
from sqlalchemy import Column, Integer, ForeignKey, Numeric, DateTime, Uuid
from sqlalchemy.orm import relationship

from cart_service.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True)
    product_id = Column(Integer, primary_key=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    cost = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Integer, nullable=False)

    order = relationship("OrderModel", back_populates="items")
