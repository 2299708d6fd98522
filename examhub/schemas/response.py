from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

class APIResponse(BaseModel, Generic[DataType]):
    """Envelope shared by every successful exam-engine response."""
    message: str = Field(..., description="What the operation did.")
    data: Optional[DataType] = Field(None, description="Session, attempt record or report produced by the operation.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error code, e.g. ATTEMPT_EXPIRED")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")

class ErrorResponse(BaseModel):
    error: ErrorDetail = Field(..., description="Error details")
    timestamp: str = Field(..., description="ISO 8601 timestamp of error")
    path: str = Field(..., description="Request path that caused the error")
    request_id: Optional[str] = Field(None, description="Unique request identifier for debugging")
