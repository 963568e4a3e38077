"""Builders for clickstream events used across the test suite."""
from datetime import datetime, timedelta


def make_event(event_type, timestamp=None, session_id="session_1_abc", user_id="alice", **event_data):
    """Event dict in the wire format returned by the query endpoints."""
    if isinstance(timestamp, datetime):
        timestamp = timestamp.isoformat()
    return {
        "sessionId": session_id,
        "userId": user_id,
        "eventType": event_type,
        "action": event_type,
        "eventData": event_data,
        "details": event_data,
        "timestamp": timestamp or "2024-03-15T12:00:00.000Z",
    }


def days_ago(reference, days):
    return reference - timedelta(days=days)


def post_event(client, event_type, **overrides):
    """POST an event to the ingestion endpoint and return the response JSON."""
    payload = {
        "sessionId": "session_1700000000000_abc123xyz",
        "userId": "alice",
        "eventType": event_type,
        "eventData": {},
        "timestamp": "2024-03-15T12:00:00.000Z",
    }
    payload.update(overrides)
    response = client.post("/api/clickstream", json=payload)
    assert response.status_code == 200, response.text
    return response.json()
