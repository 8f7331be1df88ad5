"""Restaurant schemas"""

from typing import Optional
from pydantic import BaseModel

from app.schemas.common import RelationConnect, require_reference


class RestaurantValidation(BaseModel):
    """Restaurant payload"""
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    opening_hours: Optional[str] = None
    closing_hours: Optional[str] = None
    user_id: Optional[str] = None
    user: Optional[RelationConnect] = None
    tenant_id: str

    check_references = require_reference("user")


class RestaurantUpdate(BaseModel):
    """Partial restaurant update"""
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    opening_hours: Optional[str] = None
    closing_hours: Optional[str] = None
    user_id: Optional[str] = None
    tenant_id: Optional[str] = None
