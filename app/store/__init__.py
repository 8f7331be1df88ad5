"""Store client over the SQLAlchemy models"""

from app.store.client import ModelDelegate, StoreClient
from app.store.errors import (
    ErrorCode,
    FailureReason,
    KnownRequestError,
    QueryValidationError,
    StoreError,
    UnknownRequestError,
)
from app.store.meta import (
    Entity,
    ModelMeta,
    Operation,
    OperationGroup,
    OperationKind,
    build_model_meta,
)
from app.store.policy import AccessPolicy

__all__ = [
    "AccessPolicy",
    "Entity",
    "ErrorCode",
    "FailureReason",
    "KnownRequestError",
    "ModelDelegate",
    "ModelMeta",
    "Operation",
    "OperationGroup",
    "OperationKind",
    "QueryValidationError",
    "StoreClient",
    "StoreError",
    "UnknownRequestError",
    "build_model_meta",
]
