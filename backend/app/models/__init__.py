"""Models package."""
from app.models.user import User
from app.models.content import Content
from app.models.event import ClickstreamEvent

__all__ = ["User", "Content", "ClickstreamEvent"]
