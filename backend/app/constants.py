"""Application-wide constants."""


class EventType:
    """Clickstream event type tags emitted by the capture client."""
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    PAGE_VIEW = "page_view"
    NAVIGATION = "navigation"
    COURSE_VIEW = "course_view"
    QUIZ_START = "quiz_start"
    QUIZ_ANSWER = "quiz_answer"
    QUIZ_COMPLETE = "quiz_complete"
    VIDEO_PLAY = "video_play"
    VIDEO_PAUSE = "video_pause"
    TEXT_CONTENT_VIEW = "text_content_view"
    BUTTON_CLICK = "button_click"
    FILTER_APPLIED = "filter_applied"


# Sentinels for fields the ingestion endpoint defaults
ANONYMOUS_USER = "anonymous"
UNKNOWN_SESSION = "unknown"
UNKNOWN_EVENT_TYPE = "unknown"

# Aggregation
RECENT_EVENTS_LIMIT = 10
MINUTES_PER_COURSE_VIEWED = 35  # No dwell time is tracked, so study time is estimated
MINUTES_PER_INTERACTION = 6
WEEKLY_WINDOW_DAYS = 7
HIGH_ACHIEVER_PERCENTAGE = 80

# Minimum badge count for each proficiency tier, highest first
PROFICIENCY_TIERS = (
    (7, "Expert"),
    (5, "Skilled"),
    (3, "Learner"),
    (0, "Novice"),
)
