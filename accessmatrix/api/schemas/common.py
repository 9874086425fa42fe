"""Common schemas for the household access API."""

from typing import List, Optional
from pydantic import BaseModel


class ErrorItem(BaseModel):
    """One rejected rule, keyed by what it concerns."""
    code: str
    message: str
    feature_key: Optional[str] = None
    setting_key: Optional[str] = None
    permission_key: Optional[str] = None
    role: Optional[str] = None
    user_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    code: Optional[str] = None
    errors: List[ErrorItem] = []
    current_version: Optional[int] = None


class VersionResponse(BaseModel):
    """Returned by every write: the household version after the change."""
    version: int


# Documented on every household route; payloads are built in api.main
ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Unknown member"},
    409: {"model": ErrorResponse, "description": "Household changed since it was read"},
    422: {"model": ErrorResponse, "description": "One or more rules rejected the request"},
    503: {"model": ErrorResponse, "description": "Policy store unavailable"},
}
