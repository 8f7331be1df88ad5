"""Reservation model"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base, new_id, utcnow


class Reservation(Base):
    """Table reservations"""
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(DateTime)
    time = Column(String(20))  # "19:30"
    number_of_people = Column(Integer)
    table_number = Column(Integer)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="reservations")
    restaurant = relationship("Restaurant", back_populates="reservations")
