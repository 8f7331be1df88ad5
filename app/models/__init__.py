"""Database models"""

from app.models.user import User
from app.models.restaurant import Restaurant
from app.models.menu import Menu
from app.models.order import Order
from app.models.reservation import Reservation
from app.models.review import Review
from app.models.audit import AuditLog

__all__ = [
    "User",
    "Restaurant",
    "Menu",
    "Order",
    "Reservation",
    "Review",
    "AuditLog",
]
