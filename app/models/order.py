"""Order model"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from app.database import Base, new_id, utcnow


class Order(Base):
    """Customer orders"""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(DateTime)
    total_price = Column(Integer)
    status = Column(String(50))  # pending, confirmed, preparing, ready, completed, cancelled
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="orders")
    restaurant = relationship("Restaurant", back_populates="orders")
