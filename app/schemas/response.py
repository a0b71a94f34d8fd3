from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

class APIResponse(BaseModel, Generic[DataType]):
    """Envelope for every successful leaderboard response."""
    message: str = Field(..., description="A human-readable message about the response.")
    data: Optional[DataType] = Field(None, description="The leaderboard payload, if any.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error kind; clients branch on this, never on message")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")

class ErrorResponse(BaseModel):
    error: ErrorDetail = Field(..., description="Error details")
    timestamp: str = Field(..., description="ISO 8601 timestamp of error")
    path: str = Field(..., description="Request path that caused the error")
    request_id: Optional[str] = Field(None, description="Unique request identifier for debugging")

    @classmethod
    def build(
        cls,
        code: str,
        message: str,
        path: str,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> "ErrorResponse":
        return cls(
            error=ErrorDetail(code=code, message=message, details=details),
            timestamp=datetime.now(timezone.utc).isoformat(),
            path=path,
            request_id=request_id
        )
