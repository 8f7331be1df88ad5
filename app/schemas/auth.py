"""Authentication schemas"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class Token(BaseModel):
    """JWT token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    """JWT token payload"""
    sub: str  # User ID
    tenant_id: Optional[str] = None
    roles: List[str] = []
    exp: datetime


class UserResponse(BaseModel):
    """User response"""
    id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    phone: Optional[str]
    roles: List[str]
    tenant_id: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
