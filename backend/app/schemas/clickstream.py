"""Schemas for clickstream ingestion and queries."""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional, Union


class ClickstreamEventIn(BaseModel):
    """
    Request schema for POST /api/clickstream.

    Every field is optional; the endpoint fills in defaults instead of
    rejecting incomplete payloads.
    """
    model_config = ConfigDict(extra="ignore")

    clientEventId: Optional[str] = Field(None, description="Client-generated id used to collapse retried deliveries")
    sessionId: Optional[str] = Field(None, description="Session ID from the capture client")
    userId: Optional[str] = Field(None, description="Username or user id, 'anonymous' if absent")
    eventType: Optional[str] = None
    action: Optional[str] = Field(None, description="Legacy alias of eventType")
    eventData: Optional[Dict[str, Any]] = None
    details: Optional[Dict[str, Any]] = Field(None, description="Legacy alias of eventData")
    timestamp: Optional[Union[str, int, float]] = Field(None, description="ISO-8601 string or epoch milliseconds")
    url: Optional[str] = None
    userAgent: Optional[str] = None
    viewport: Optional[Dict[str, Any]] = None
    elementId: Optional[str] = None
    page: Optional[str] = None
    additionalData: Optional[Any] = None

    @field_validator(
        "clientEventId", "sessionId", "userId", "eventType", "action",
        "elementId", "page", "url", "userAgent",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        """Numbers are stored in their canonical string form; other non-text values are dropped."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        """Anything but a string or a number falls back to server time."""
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return None
        return value

    @field_validator("eventData", "details", "viewport", mode="before")
    @classmethod
    def _coerce_mapping(cls, value: Any) -> Any:
        if value is None or isinstance(value, dict):
            return value
        return {"value": value}


class ClickstreamIngestResponse(BaseModel):
    """Response schema for POST /api/clickstream."""
    success: bool
    message: str
    id: int


class ClickstreamQueryResponse(BaseModel):
    """Response schema for GET /api/analytics/clickstream."""
    success: bool
    data: List[Dict[str, Any]]
    count: int


class UserClickstreamResponse(BaseModel):
    """Response schema for GET /api/clickstream/user/{userId}."""
    success: bool
    userId: str
    totalActions: int
    data: List[Dict[str, Any]]
