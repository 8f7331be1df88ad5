"""Store errors, shaped after the ORM error codes API clients already know"""

from typing import Any, Dict, Optional


class ErrorCode:
    UNIQUE_CONSTRAINT_FAILED = "P2002"
    FOREIGN_KEY_CONSTRAINT_FAILED = "P2003"
    CONSTRAINT_FAILED = "P2004"
    NULL_CONSTRAINT_FAILED = "P2011"
    REQUIRED_CONNECTED_RECORD_NOT_FOUND = "P2018"
    DEPEND_ON_RECORD_NOT_FOUND = "P2025"


class FailureReason:
    ACCESS_POLICY_VIOLATION = "ACCESS_POLICY_VIOLATION"
    RESULT_NOT_READABLE = "RESULT_NOT_READABLE"
    DATA_VALIDATION_VIOLATION = "DATA_VALIDATION_VIOLATION"


ERROR_STATUS_MAPPING: Dict[str, int] = {
    ErrorCode.CONSTRAINT_FAILED: 403,
    ErrorCode.REQUIRED_CONNECTED_RECORD_NOT_FOUND: 404,
    ErrorCode.DEPEND_ON_RECORD_NOT_FOUND: 404,
}


class StoreError(Exception):
    """Base class for errors raised by the store client"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class KnownRequestError(StoreError):
    """A request the database or policy layer rejected with a known code"""

    def __init__(self, code: str, message: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.meta = meta or {}

    @property
    def reason(self) -> Optional[str]:
        return self.meta.get("reason")

    @property
    def http_status(self) -> int:
        return ERROR_STATUS_MAPPING.get(self.code, 400)


class UnknownRequestError(StoreError):
    """A database failure without a known code"""


class QueryValidationError(StoreError):
    """Malformed query arguments: unknown fields, operators or values"""


def access_denied(entity: str, operation: str) -> KnownRequestError:
    return KnownRequestError(
        ErrorCode.CONSTRAINT_FAILED,
        f"denied by policy: {entity} entities failed '{operation}' check",
        {"reason": FailureReason.ACCESS_POLICY_VIOLATION},
    )


def record_not_found(entity: str, operation: str) -> KnownRequestError:
    return KnownRequestError(
        ErrorCode.DEPEND_ON_RECORD_NOT_FOUND,
        f"Record to {operation} not found.",
        {"cause": f"No {entity} record found for {operation}"},
    )
