"""Serialization utilities for converting models to API responses."""
from datetime import datetime
from typing import Any, Dict, Optional

from app.models import ClickstreamEvent, Content, User


def serialize_datetime(value: Optional[datetime]) -> Optional[str]:
    """
    Serialize datetime to ISO format string.

    Args:
        value: Datetime value or None

    Returns:
        ISO format string or None
    """
    return value.isoformat() if value else None


def serialize_event(event: ClickstreamEvent) -> Dict[str, Any]:
    """
    Serialize a clickstream event to its wire format.

    Both naming conventions (`eventType`/`action`, `eventData`/`details`) are
    emitted so consumers written against either see consistent values.

    Args:
        event: Stored clickstream event

    Returns:
        Dictionary in the camelCase wire format
    """
    return {
        "id": event.id,
        "clientEventId": event.client_event_id,
        "sessionId": event.session_id,
        "userId": event.user_id,
        "eventType": event.event_type,
        "eventData": event.event_data or {},
        "timestamp": event.timestamp,
        "url": event.url,
        "userAgent": event.user_agent,
        "viewport": event.viewport,
        "ip": event.ip,
        "action": event.action,
        "elementId": event.element_id,
        "page": event.page,
        "additionalData": event.additional_data,
        "details": event.details if event.details is not None else (event.event_data or {}),
    }


def serialize_user(user: User) -> Dict[str, Any]:
    """Serialize a user without its password hash."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "createdAt": serialize_datetime(user.created_at),
        "lastLogin": serialize_datetime(user.last_login),
    }


def serialize_content(content: Content) -> Dict[str, Any]:
    """Serialize a learning content item."""
    return {
        "id": content.id,
        "title": content.title,
        "type": content.type,
        "description": content.description,
        "videoUrl": content.video_url,
        "quizData": content.quiz_data,
        "createdAt": serialize_datetime(content.created_at),
    }
