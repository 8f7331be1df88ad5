"""Pydantic schemas for request/response validation"""

from app.schemas.auth import (
    Token,
    TokenPayload,
    UserResponse,
)
from app.schemas.common import (
    ConnectTarget,
    RelationConnect,
)
from app.schemas.menu import (
    MenuValidation,
    MenuUpdate,
)
from app.schemas.order import (
    OrderValidation,
    OrderUpdate,
)
from app.schemas.reservation import (
    ReservationValidation,
    ReservationUpdate,
)
from app.schemas.restaurant import (
    RestaurantValidation,
    RestaurantUpdate,
)
from app.schemas.review import (
    ReviewValidation,
    ReviewUpdate,
)
from app.schemas.user import (
    UserProfileValidation,
)

__all__ = [
    "Token",
    "TokenPayload",
    "UserResponse",
    "ConnectTarget",
    "RelationConnect",
    "MenuValidation",
    "MenuUpdate",
    "OrderValidation",
    "OrderUpdate",
    "ReservationValidation",
    "ReservationUpdate",
    "RestaurantValidation",
    "RestaurantUpdate",
    "ReviewValidation",
    "ReviewUpdate",
    "UserProfileValidation",
]
