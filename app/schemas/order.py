"""Order schemas"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.common import RelationConnect, require_reference


class OrderValidation(BaseModel):
    """Order payload"""
    date: Optional[datetime] = None
    total_price: Optional[int] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    user: Optional[RelationConnect] = None
    restaurant_id: Optional[str] = None
    restaurant: Optional[RelationConnect] = None

    check_references = require_reference("user", "restaurant")


class OrderUpdate(BaseModel):
    """Partial order update"""
    date: Optional[datetime] = None
    total_price: Optional[int] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    restaurant_id: Optional[str] = None
