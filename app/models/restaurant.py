"""Restaurant model"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base, new_id, utcnow


class Restaurant(Base):
    """A restaurant owned by one user within one tenant"""
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    address = Column(Text)
    opening_hours = Column(String(50))  # "11:00"
    closing_hours = Column(String(50))  # "22:00"
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    tenant_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="restaurants")
    menus = relationship("Menu", back_populates="restaurant")
    orders = relationship("Order", back_populates="restaurant")
    reservations = relationship("Reservation", back_populates="restaurant")
    reviews = relationship("Review", back_populates="restaurant")
