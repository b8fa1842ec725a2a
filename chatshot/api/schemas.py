"""Response schemas for the chatshot HTTP API."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(
        ...,
        description="Error code or type"
    )

    message: str = Field(
        ...,
        description="Human-readable error message"
    )

    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details for debugging"
    )

    request_id: Optional[str] = Field(
        default=None,
        description="Unique request identifier for tracking"
    )

    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Error timestamp"
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="healthy, degraded or unhealthy")
    version: str
    browser: bool = Field(..., description="Browser process is running")
    chat: bool = Field(..., description="Chat document is logged in")
    crash_check: bool = Field(..., description="Chat crash check loop is active")
    locks: int = Field(default=0, description="Currently held route locks")
    uptime_seconds: float
