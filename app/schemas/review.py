"""Review schemas"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.common import RelationConnect, require_reference


class ReviewValidation(BaseModel):
    """Review payload"""
    rating: Optional[int] = None
    comment: Optional[str] = None
    date: Optional[datetime] = None
    user_id: Optional[str] = None
    user: Optional[RelationConnect] = None
    restaurant_id: Optional[str] = None
    restaurant: Optional[RelationConnect] = None

    check_references = require_reference("user", "restaurant")


class ReviewUpdate(BaseModel):
    """Partial review update"""
    rating: Optional[int] = None
    comment: Optional[str] = None
    date: Optional[datetime] = None
    user_id: Optional[str] = None
    restaurant_id: Optional[str] = None
