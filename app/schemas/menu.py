"""Menu schemas"""

from typing import Optional
from pydantic import BaseModel

from app.schemas.common import RelationConnect, require_reference


class MenuValidation(BaseModel):
    """Menu item payload"""
    name: str
    description: Optional[str] = None
    price: Optional[int] = None  # cents
    category: Optional[str] = None
    restaurant_id: Optional[str] = None
    restaurant: Optional[RelationConnect] = None

    check_references = require_reference("restaurant")


class MenuUpdate(BaseModel):
    """Partial menu update"""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = None
    category: Optional[str] = None
    restaurant_id: Optional[str] = None
