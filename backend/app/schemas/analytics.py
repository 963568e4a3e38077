"""Schemas for statistics derived from the clickstream."""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class QuizCompletion(BaseModel):
    """One quiz_complete event."""
    courseId: Optional[Any] = None
    courseTitle: Optional[str] = None
    score: float = 0
    totalQuestions: int = 0
    percentage: float = 0
    timestamp: Optional[Any] = None


class ContentActivity(BaseModel):
    """A video play or text view."""
    courseId: Optional[Any] = None
    timestamp: Optional[Any] = None


class Achievement(BaseModel):
    """A badge derived from the event history."""
    title: str
    description: str
    icon: str
    earned: bool = True


class RecentProgressItem(BaseModel):
    id: Optional[int] = None
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[Any] = None


class ClickstreamSummary(BaseModel):
    """Platform-wide analytics over a filtered event sequence."""
    totalEvents: int = 0
    uniqueSessions: int = 0
    eventTypes: Dict[str, int] = Field(default_factory=dict)
    topCourses: Dict[str, int] = Field(default_factory=dict)
    quizCompletions: List[QuizCompletion] = Field(default_factory=list)
    recentEvents: List[Dict[str, Any]] = Field(default_factory=list)


class LearningProgress(BaseModel):
    """Per-learner progress view."""
    totalSessions: int = 0
    coursesViewed: List[Any] = Field(default_factory=list)
    quizzesTaken: List[QuizCompletion] = Field(default_factory=list)
    videoWatched: List[ContentActivity] = Field(default_factory=list)
    textContentViewed: List[ContentActivity] = Field(default_factory=list)
    achievements: List[Achievement] = Field(default_factory=list)
    learningStreak: int = 0
    activeDays: int = 0
    totalTimeSpent: int = 0  # Estimated minutes


class DashboardSummary(BaseModel):
    """Per-learner home dashboard figures."""
    totalLearningModules: int = 0
    completedModules: int = 0
    totalStudyHours: int = 0
    earnedBadges: int = 0
    achievements: List[Achievement] = Field(default_factory=list)
    recentProgress: List[RecentProgressItem] = Field(default_factory=list)
    weeklyEngagement: int = 0  # Estimated hours over the last week
    learningStreak: int = 0
    proficiencyLevel: str = "Novice"
    progressPercentage: int = 0


class ClickstreamSummaryResponse(BaseModel):
    success: bool
    count: int
    summary: ClickstreamSummary


class LearningProgressResponse(BaseModel):
    success: bool
    userId: str
    progress: LearningProgress


class DashboardSummaryResponse(BaseModel):
    success: bool
    userId: str
    dashboard: DashboardSummary
