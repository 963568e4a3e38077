"""Learning content model."""
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, func
from app.database import Base


class Content(Base):
    """Learning content item (text, video or quiz)."""
    __tablename__ = "content"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=True)
    type = Column(String, nullable=True, index=True)  # text | video | quiz
    description = Column(Text, nullable=True)
    video_url = Column(String, nullable=True)
    quiz_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
