"""Clickstream event model: one immutable row per recorded interaction."""
from sqlalchemy import Column, String, Integer, DateTime, JSON, func, Index
from app.database import Base


class ClickstreamEvent(Base):
    """Append-only clickstream event record."""
    __tablename__ = "clickstream_events"

    # Autoincrement keeps ids unique and in append order
    id = Column(Integer, primary_key=True, autoincrement=True)
    client_event_id = Column(String, unique=True, nullable=True, index=True)  # Set by the capture client for idempotent retry
    session_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)  # Canonical string form, "anonymous" if unknown
    event_type = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False)  # Legacy alias of event_type
    event_data = Column(JSON, nullable=False, default=dict)
    details = Column(JSON, nullable=True)  # Legacy alias of event_data
    timestamp = Column(String, nullable=False)  # As supplied by the client
    occurred_at = Column(DateTime, nullable=True, index=True)  # Parsed UTC timestamp, NULL if unparseable
    url = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    viewport = Column(JSON, nullable=True)
    ip = Column(String, nullable=True)
    page = Column(String, nullable=True, index=True)
    element_id = Column(String, nullable=True)
    additional_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_clickstream_user_occurred", "user_id", "occurred_at"),
    )
