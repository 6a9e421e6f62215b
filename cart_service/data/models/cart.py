# cart_service/data/models/cart.py
import uuid

from sqlalchemy import Column, Integer, DateTime, Index, Uuid, text
from sqlalchemy.orm import relationship

from cart_service.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(Integer, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Integer, nullable=True)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )

    # one live cart per user, soft-deleted carts do not count
    __table_args__ = (
        Index(
            "uq_carts_active_user",
            "user_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )
