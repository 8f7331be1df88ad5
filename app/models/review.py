"""Review model"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base, new_id, utcnow


class Review(Base):
    """Guest reviews of a restaurant"""
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=new_id)
    rating = Column(Integer)
    comment = Column(Text)
    date = Column(DateTime)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="reviews")
    restaurant = relationship("Restaurant", back_populates="reviews")
