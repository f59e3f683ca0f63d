import enum
import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    RESERVED = "reserved"
    SOLD = "sold"
    DELETED = "deleted"


class ProductCondition(str, enum.Enum):
    NEW = "new"
    VERY_GOOD = "very-good"
    GOOD = "good"
    SATISFACTORY = "satisfactory"


class Product(Base):
    """
    A listing owned by exactly one seller.

    images holds ordered storage keys (or absolute URLs); they are resolved to
    retrievable URLs when listings are returned to clients.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("products_seller_status_created_at_idx", "seller_id", "status", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    # Whole currency units
    price = Column(Integer, nullable=False, index=True)
    original_price = Column(Integer, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    size = Column(String(10), nullable=False)
    condition = Column(String(20), nullable=False)
    brand = Column(String(100), nullable=True)
    location = Column(String(100), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    seller_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ProductStatus.ACTIVE.value)
    view_count = Column(Integer, nullable=False, default=0)
    favorite_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    seller = relationship("User", backref="products")
    category = relationship("Category")
