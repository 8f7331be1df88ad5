"""Menu model"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base, new_id, utcnow


class Menu(Base):
    """Menu entries of a restaurant"""
    __tablename__ = "menus"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Integer)  # cents
    category = Column(String(100))  # Appetizers, Entrees, Desserts, Drinks, etc.
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="menus")
