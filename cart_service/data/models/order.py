# cart_service/data/models/order.py
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship

from cart_service.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Integer, nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, processing, shipped, delivered, canceled
    total_cost = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(Integer, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Integer, nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
