"""Reservation schemas"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.common import RelationConnect, require_reference


class ReservationValidation(BaseModel):
    """Reservation payload"""
    date: Optional[datetime] = None
    time: Optional[str] = None  # "19:30"
    number_of_people: Optional[int] = None
    table_number: Optional[int] = None
    user_id: Optional[str] = None
    user: Optional[RelationConnect] = None
    restaurant_id: Optional[str] = None
    restaurant: Optional[RelationConnect] = None

    check_references = require_reference("user", "restaurant")


class ReservationUpdate(BaseModel):
    """Partial reservation update"""
    date: Optional[datetime] = None
    time: Optional[str] = None
    number_of_people: Optional[int] = None
    table_number: Optional[int] = None
    user_id: Optional[str] = None
    restaurant_id: Optional[str] = None
