"""Schemas for learning content."""
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class ContentCreate(BaseModel):
    title: Optional[str] = None
    type: Optional[str] = None  # text | video | quiz
    description: Optional[str] = None
    videoUrl: Optional[str] = None
    quizData: Optional[Dict[str, Any]] = None


class ContentListResponse(BaseModel):
    success: bool
    content: List[Dict[str, Any]]


class ContentCreateResponse(BaseModel):
    success: bool
    message: str
    content: Dict[str, Any]


class SeedResponse(BaseModel):
    success: bool
    message: str
