"""User model"""

from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship

from app.database import Base, new_id, utcnow


class User(Base):
    """Application users, scoped to a tenant"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(255), index=True)

    # Authentication
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    first_name = Column(String(255))
    last_name = Column(String(255))
    phone = Column(String(20))  # E.164, used for notifications

    # Roles from the tenant configuration: ["Owner"], ["Manager"], ["Guest"]
    roles = Column(JSON, default=list)

    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    restaurants = relationship("Restaurant", back_populates="user")
    orders = relationship("Order", back_populates="user")
    reservations = relationship("Reservation", back_populates="user")
    reviews = relationship("Review", back_populates="user")
