"""Statistics derived from a clickstream event sequence.

Every function here is a pure function of its arguments: events are read as
wire-format dicts (see `app.utils.serialization.serialize_event`), nothing is
cached or persisted, and calling a function twice on the same input gives the
same result. Malformed events are skipped or read with defaults, never raised
on, and an empty sequence yields an all-zero result.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.constants import (
    EventType,
    HIGH_ACHIEVER_PERCENTAGE,
    MINUTES_PER_COURSE_VIEWED,
    MINUTES_PER_INTERACTION,
    PROFICIENCY_TIERS,
    RECENT_EVENTS_LIMIT,
    UNKNOWN_EVENT_TYPE,
    WEEKLY_WINDOW_DAYS,
)
from app.schemas.analytics import (
    Achievement,
    ClickstreamSummary,
    ContentActivity,
    DashboardSummary,
    LearningProgress,
    QuizCompletion,
    RecentProgressItem,
)
from app.utils.timestamps import parse_timestamp


def _valid(events: Optional[Iterable[Any]]) -> List[Mapping[str, Any]]:
    return [event for event in (events or []) if isinstance(event, Mapping)]


def event_type_of(event: Mapping[str, Any]) -> str:
    """Event type, falling back to the legacy `action` field."""
    value = event.get("eventType") or event.get("action") or UNKNOWN_EVENT_TYPE
    return value if isinstance(value, str) else str(value)


def event_data_of(event: Mapping[str, Any]) -> Mapping[str, Any]:
    """Event data, falling back to the legacy `details` field."""
    for key in ("eventData", "details"):
        value = event.get(key)
        if isinstance(value, Mapping) and value:
            return value
    return {}


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return 0
        return parsed if math.isfinite(parsed) else 0
    return 0


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _most_recent_first(events: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Newest timestamp first; ties and unparseable timestamps keep later-appended first."""
    def key(item: Tuple[int, Mapping[str, Any]]):
        index, event = item
        parsed = parse_timestamp(event.get("timestamp"))
        return (parsed is not None, parsed or datetime.min.replace(tzinfo=timezone.utc), index)

    return [event for _, event in sorted(enumerate(events), key=key, reverse=True)]


def quiz_percentage(score: Any, total_questions: Any) -> int:
    """Score as a whole percentage, rounded half up; 0 when there are no questions."""
    total = _number(total_questions)
    if not total:
        return 0
    return math.floor(_number(score) / total * 100 + 0.5)


def quiz_completion_of(event: Mapping[str, Any]) -> QuizCompletion:
    """Extract the quiz result carried by a quiz_complete event."""
    data = event_data_of(event)
    score = _number(data.get("score"))
    total = int(_number(data.get("totalQuestions")))
    if "percentage" in data and data.get("percentage") is not None:
        percentage = _number(data.get("percentage"))
    else:
        percentage = quiz_percentage(score, total)
    return QuizCompletion(
        courseId=data.get("courseId"),
        courseTitle=_text(data.get("courseTitle")),
        score=score,
        totalQuestions=total,
        percentage=percentage,
        timestamp=event.get("timestamp"),
    )


def quiz_completions(events: Iterable[Any]) -> List[QuizCompletion]:
    """Every quiz_complete event in input order; repeated attempts are all kept."""
    return [
        quiz_completion_of(event)
        for event in _valid(events)
        if event_type_of(event) == EventType.QUIZ_COMPLETE
    ]


def distinct_courses_viewed(events: Iterable[Any]) -> List[Any]:
    """Course ids of course_view events, first occurrence order, `1` and `"1"` counted once."""
    seen = set()
    courses = []
    for event in _valid(events):
        if event_type_of(event) != EventType.COURSE_VIEW:
            continue
        course_id = event_data_of(event).get("courseId")
        if course_id is None or course_id == "":
            continue
        if str(course_id) not in seen:
            seen.add(str(course_id))
            courses.append(course_id)
    return courses


def unique_sessions(events: Iterable[Any]) -> int:
    return len({event.get("sessionId") for event in _valid(events)})


def event_type_histogram(events: Iterable[Any]) -> Dict[str, int]:
    histogram: Dict[str, int] = {}
    for event in _valid(events):
        event_type = event_type_of(event)
        histogram[event_type] = histogram.get(event_type, 0) + 1
    return histogram


def top_courses(events: Iterable[Any]) -> Dict[str, int]:
    """
    Interaction counts per course, highest first.

    Keyed by "<courseId> - <courseTitle>" over every event that carries a
    courseId; ties keep first-appearance order.
    """
    counts: Dict[str, int] = {}
    for event in _valid(events):
        data = event_data_of(event)
        course_id = data.get("courseId")
        if course_id is None or course_id == "":
            continue
        key = f"{course_id} - {data.get('courseTitle') or 'Unknown'}"
        counts[key] = counts.get(key, 0) + 1
    return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))


@dataclass
class _LearnerFacts:
    courses: List[Any] = field(default_factory=list)
    quiz_starts: int = 0
    completions: List[QuizCompletion] = field(default_factory=list)
    video_plays: int = 0


def _facts(events: Sequence[Mapping[str, Any]]) -> _LearnerFacts:
    facts = _LearnerFacts(
        courses=distinct_courses_viewed(events),
        completions=quiz_completions(events),
    )
    for event in events:
        event_type = event_type_of(event)
        if event_type == EventType.QUIZ_START:
            facts.quiz_starts += 1
        elif event_type == EventType.VIDEO_PLAY:
            facts.video_plays += 1
    return facts


# (title, description, icon, rule)
BADGE_RULES: Tuple[Tuple[str, str, str, Callable[[_LearnerFacts], bool]], ...] = (
    ("First Steps", "Viewed your first course", "🎯",
     lambda f: len(f.courses) >= 1),
    ("Quiz Master", "Completed your first quiz", "🧠",
     lambda f: len(f.completions) >= 1),
    ("High Achiever", f"Scored {HIGH_ACHIEVER_PERCENTAGE}% or higher on a quiz", "⭐",
     lambda f: any(quiz.percentage >= HIGH_ACHIEVER_PERCENTAGE for quiz in f.completions)),
    ("Explorer", "Explored 3 different courses", "🔍",
     lambda f: len(f.courses) >= 3),
    ("Assessment Taker", "Started your first quiz", "📝",
     lambda f: f.quiz_starts >= 1),
    ("Media Learner", "Played your first video", "🎬",
     lambda f: f.video_plays >= 1),
    ("Learning Explorer", "Explored 5 different courses", "🧭",
     lambda f: len(f.courses) >= 5),
)


def _achievements_from(facts: _LearnerFacts) -> List[Achievement]:
    return [
        Achievement(title=title, description=description, icon=icon)
        for title, description, icon, rule in BADGE_RULES
        if rule(facts)
    ]


def derive_achievements(events: Iterable[Any]) -> List[Achievement]:
    """Badges earned by the event history; each rule is evaluated independently."""
    return _achievements_from(_facts(_valid(events)))


def activity_dates(events: Iterable[Any], tz: tzinfo = timezone.utc) -> set:
    """Calendar dates (in `tz`) with at least one event that has a parseable timestamp."""
    dates = set()
    for event in _valid(events):
        parsed = parse_timestamp(event.get("timestamp"))
        if parsed is not None:
            dates.add(parsed.astimezone(tz).date())
    return dates


def learning_streak(
    events: Iterable[Any],
    today: Optional[date] = None,
    tz: tzinfo = timezone.utc,
) -> int:
    """
    Consecutive active days ending today.

    Walks back one day at a time from `today` and stops at the first day
    without activity, so a learner with no activity today has a streak of 0.
    """
    dates = activity_dates(events, tz)
    current = today or datetime.now(tz).date()
    streak = 0
    while current in dates:
        streak += 1
        current -= timedelta(days=1)
    return streak


def proficiency_tier(badge_count: int) -> str:
    for minimum, tier in PROFICIENCY_TIERS:
        if badge_count >= minimum:
            return tier
    return PROFICIENCY_TIERS[-1][1]


def progress_percentage(completed_quizzes: int, distinct_courses: int) -> int:
    return min(100, math.floor(completed_quizzes / max(distinct_courses, 1) * 100))


def estimate_study_minutes(distinct_courses: int) -> int:
    return distinct_courses * MINUTES_PER_COURSE_VIEWED


def weekly_engagement(events: Iterable[Any], now: Optional[datetime] = None) -> int:
    """Estimated hours of engagement over the last week (6 minutes per interaction)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window_start = now - timedelta(days=WEEKLY_WINDOW_DAYS)
    recent = 0
    for event in _valid(events):
        parsed = parse_timestamp(event.get("timestamp"))
        if parsed is not None and parsed >= window_start:
            recent += 1
    return math.floor(recent * MINUTES_PER_INTERACTION / 60)


def summarize_clickstream(events: Iterable[Any]) -> ClickstreamSummary:
    """Platform-wide analytics dashboard figures."""
    valid = _valid(events)
    if not valid:
        return ClickstreamSummary()

    return ClickstreamSummary(
        totalEvents=len(valid),
        uniqueSessions=unique_sessions(valid),
        eventTypes=event_type_histogram(valid),
        topCourses=top_courses(valid),
        quizCompletions=quiz_completions(valid),
        recentEvents=[dict(event) for event in _most_recent_first(valid)[:RECENT_EVENTS_LIMIT]],
    )


def _activities(events: Sequence[Mapping[str, Any]], event_type: str) -> List[ContentActivity]:
    return [
        ContentActivity(courseId=event_data_of(event).get("courseId"), timestamp=event.get("timestamp"))
        for event in events
        if event_type_of(event) == event_type
    ]


def summarize_progress(
    events: Iterable[Any],
    today: Optional[date] = None,
    tz: tzinfo = timezone.utc,
) -> LearningProgress:
    """A learner's progress page: courses, quizzes, media, badges and streak."""
    valid = _valid(events)
    if not valid:
        return LearningProgress()

    facts = _facts(valid)
    return LearningProgress(
        totalSessions=unique_sessions(valid),
        coursesViewed=facts.courses,
        quizzesTaken=facts.completions,
        videoWatched=_activities(valid, EventType.VIDEO_PLAY),
        textContentViewed=_activities(valid, EventType.TEXT_CONTENT_VIEW),
        achievements=_achievements_from(facts),
        learningStreak=learning_streak(valid, today=today, tz=tz),
        activeDays=len(activity_dates(valid, tz)),
        totalTimeSpent=estimate_study_minutes(len(facts.courses)),
    )


def summarize_dashboard(
    events: Iterable[Any],
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> DashboardSummary:
    """A learner's home dashboard: modules, badges, tier, streak and progress."""
    valid = _valid(events)
    if not valid:
        return DashboardSummary()

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    facts = _facts(valid)
    achievements = _achievements_from(facts)
    modules = len(facts.courses)

    recent = [
        RecentProgressItem(
            id=event.get("id") if isinstance(event.get("id"), int) else None,
            action=event_type_of(event),
            details=dict(event_data_of(event)),
            timestamp=event.get("timestamp"),
        )
        for event in _most_recent_first(valid)[:RECENT_EVENTS_LIMIT]
    ]

    return DashboardSummary(
        totalLearningModules=modules,
        completedModules=len(facts.completions),
        totalStudyHours=math.floor(estimate_study_minutes(modules) / 60),
        earnedBadges=len(achievements),
        achievements=achievements,
        recentProgress=recent,
        weeklyEngagement=weekly_engagement(valid, now=now),
        learningStreak=learning_streak(valid, today=now.astimezone(tz).date(), tz=tz),
        proficiencyLevel=proficiency_tier(len(achievements)),
        progressPercentage=progress_percentage(len(facts.completions), modules),
    )
