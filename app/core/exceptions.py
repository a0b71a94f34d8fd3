from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ErrorKindEnum(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INTERNAL = "INTERNAL"


ERROR_STATUS_CODES = {
    ErrorKindEnum.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKindEnum.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKindEnum.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKindEnum.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKindEnum.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class LeaderboardError(HTTPException):
    """Error with a closed kind so callers can branch without matching on messages."""

    def __init__(self, kind: ErrorKindEnum, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=ERROR_STATUS_CODES[kind], detail=detail)
        self.kind = kind
        self.details = details

    @classmethod
    def invalid_argument(cls, detail: str) -> "LeaderboardError":
        return cls(ErrorKindEnum.INVALID_ARGUMENT, detail)

    @classmethod
    def unauthenticated(cls, detail: str) -> "LeaderboardError":
        return cls(ErrorKindEnum.UNAUTHENTICATED, detail)

    @classmethod
    def not_found(cls, detail: str) -> "LeaderboardError":
        return cls(ErrorKindEnum.NOT_FOUND, detail)

    @classmethod
    def permission_denied(cls, detail: str) -> "LeaderboardError":
        return cls(ErrorKindEnum.PERMISSION_DENIED, detail)

    @classmethod
    def internal(cls, detail: str, error: Optional[str] = None) -> "LeaderboardError":
        return cls(ErrorKindEnum.INTERNAL, detail, details={"error": error} if error is not None else None)
