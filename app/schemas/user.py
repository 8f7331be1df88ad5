"""User profile schemas"""

from typing import Optional
from pydantic import BaseModel


class UserProfileValidation(BaseModel):
    """Fields a user may change on their own profile"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
