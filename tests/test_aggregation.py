"""Tests for the pure aggregation functions."""
from datetime import date, datetime, timezone

import pytest

from app.schemas.analytics import ClickstreamSummary, DashboardSummary, LearningProgress
from app.services.aggregation import (
    derive_achievements,
    distinct_courses_viewed,
    estimate_study_minutes,
    event_type_histogram,
    learning_streak,
    proficiency_tier,
    progress_percentage,
    quiz_completions,
    quiz_percentage,
    summarize_clickstream,
    summarize_dashboard,
    summarize_progress,
    top_courses,
    unique_sessions,
    weekly_engagement,
)
from factories import days_ago, make_event


def _titles(achievements):
    return [achievement.title for achievement in achievements]


class TestEmptyInput:

    def test_summaries_are_all_zero(self):
        assert summarize_clickstream([]) == ClickstreamSummary()
        assert summarize_progress([]) == LearningProgress()
        assert summarize_dashboard([]) == DashboardSummary()

    def test_none_is_treated_as_empty(self):
        assert summarize_clickstream(None).totalEvents == 0

    def test_zero_values(self):
        summary = summarize_dashboard([])

        assert summary.earnedBadges == 0
        assert summary.proficiencyLevel == "Novice"
        assert summary.progressPercentage == 0
        assert summary.learningStreak == 0


class TestPurity:

    def test_repeated_calls_give_identical_results(self, now):
        events = [
            make_event("course_view", now, courseId=1, courseTitle="Intro"),
            make_event("quiz_complete", now, courseId=1, score=8, totalQuestions=10, percentage=80),
        ]

        assert summarize_clickstream(events) == summarize_clickstream(events)
        assert summarize_progress(events, today=now.date()) == summarize_progress(events, today=now.date())
        assert summarize_dashboard(events, now=now) == summarize_dashboard(events, now=now)

    def test_input_is_not_mutated(self, now):
        events = [make_event("course_view", now, courseId=1)]
        before = [dict(event) for event in events]

        summarize_dashboard(events, now=now)

        assert events == before


class TestClickstreamSummary:

    def test_histogram_falls_back_to_legacy_action(self):
        events = [
            make_event("page_view"),
            make_event("page_view"),
            {"sessionId": "s", "action": "button_click"},
            {"sessionId": "s"},
        ]

        assert event_type_histogram(events) == {"page_view": 2, "button_click": 1, "unknown": 1}

    def test_unique_sessions(self):
        events = [
            make_event("page_view", session_id="a"),
            make_event("page_view", session_id="b"),
            make_event("course_view", session_id="a"),
        ]

        assert unique_sessions(events) == 2

    def test_top_courses_ranked_by_count(self):
        events = [
            make_event("course_view", courseId=1, courseTitle="Intro"),
            make_event("course_view", courseId=2, courseTitle="Advanced"),
            make_event("quiz_start", courseId=2, courseTitle="Advanced"),
            make_event("video_play", courseId=3),
        ]

        ranking = top_courses(events)

        assert list(ranking.items()) == [("2 - Advanced", 2), ("1 - Intro", 1), ("3 - Unknown", 1)]

    def test_quiz_completions_are_not_deduplicated(self):
        events = [
            make_event("quiz_complete", "2024-03-01T10:00:00Z", courseId=1, score=5, totalQuestions=10, percentage=50),
            make_event("quiz_complete", "2024-03-02T10:00:00Z", courseId=1, score=9, totalQuestions=10, percentage=90),
        ]

        completions = quiz_completions(events)

        assert [quiz.percentage for quiz in completions] == [50, 90]
        assert completions[1].timestamp == "2024-03-02T10:00:00Z"

    def test_recent_events_newest_first_and_limited(self):
        events = [make_event("page_view", f"2024-03-{day:02d}T10:00:00Z", page=str(day)) for day in range(1, 13)]

        recent = summarize_clickstream(events).recentEvents

        assert len(recent) == 10
        assert recent[0]["eventData"]["page"] == "12"
        assert recent[-1]["eventData"]["page"] == "3"

    def test_summary_counts(self):
        events = [
            make_event("session_start", session_id="a"),
            make_event("course_view", session_id="a", courseId=1, courseTitle="Intro"),
            make_event("quiz_complete", session_id="b", courseId=1, score=8, totalQuestions=10),
        ]

        summary = summarize_clickstream(events)

        assert summary.totalEvents == 3
        assert summary.uniqueSessions == 2
        assert summary.eventTypes == {"session_start": 1, "course_view": 1, "quiz_complete": 1}
        assert len(summary.quizCompletions) == 1


class TestAchievements:

    def test_score_of_eight_out_of_ten_is_high_achiever(self):
        assert quiz_percentage(8, 10) == 80

        events = [make_event("quiz_complete", courseId=1, score=8, totalQuestions=10)]

        assert quiz_completions(events)[0].percentage == 80
        assert "High Achiever" in _titles(derive_achievements(events))

    def test_below_threshold_is_not_high_achiever(self):
        events = [make_event("quiz_complete", courseId=1, score=7, totalQuestions=10, percentage=70)]

        titles = _titles(derive_achievements(events))

        assert "Quiz Master" in titles
        assert "High Achiever" not in titles

    def test_course_badges(self):
        events = [make_event("course_view", courseId=course_id) for course_id in (1, 2, 3)]

        titles = _titles(derive_achievements(events))

        assert "First Steps" in titles
        assert "Explorer" in titles
        assert "Learning Explorer" not in titles

    def test_repeated_course_views_count_once(self):
        events = [
            make_event("course_view", courseId=1),
            make_event("course_view", courseId="1"),
            make_event("course_view", courseId=2),
        ]

        assert distinct_courses_viewed(events) == [1, 2]
        assert "Explorer" not in _titles(derive_achievements(events))

    def test_every_rule_earned(self):
        events = [make_event("course_view", courseId=course_id) for course_id in range(1, 6)]
        events += [
            make_event("quiz_start", courseId=1),
            make_event("quiz_complete", courseId=1, score=10, totalQuestions=10),
            make_event("video_play", courseId=2),
        ]

        assert len(derive_achievements(events)) == 7

    def test_no_events_no_badges(self):
        assert derive_achievements([]) == []


class TestLearningStreak:

    def test_gap_breaks_the_streak(self, now):
        events = [
            make_event("page_view", now),
            make_event("page_view", days_ago(now, 1)),
            make_event("page_view", days_ago(now, 3)),
        ]

        assert learning_streak(events, today=now.date()) == 2

    def test_no_activity_today_means_no_streak(self, now):
        events = [make_event("page_view", days_ago(now, 1))]

        assert learning_streak(events, today=now.date()) == 0

    def test_multiple_events_on_one_day_count_once(self, now):
        events = [make_event("page_view", now), make_event("course_view", now)]

        assert learning_streak(events, today=now.date()) == 1

    def test_unparseable_timestamps_are_ignored(self, now):
        events = [make_event("page_view", now), make_event("page_view", "not-a-date")]

        assert learning_streak(events, today=now.date()) == 1

    def test_days_are_bucketed_in_the_given_zone(self):
        from zoneinfo import ZoneInfo

        # 02:00 UTC on the 15th is still the 14th in New York
        events = [make_event("page_view", "2024-03-15T02:00:00Z")]

        assert learning_streak(events, today=date(2024, 3, 14), tz=ZoneInfo("America/New_York")) == 1
        assert learning_streak(events, today=date(2024, 3, 14)) == 0


class TestDerivedFigures:

    @pytest.mark.parametrize("badges,tier", [
        (0, "Novice"), (2, "Novice"),
        (3, "Learner"), (4, "Learner"),
        (5, "Skilled"), (6, "Skilled"),
        (7, "Expert"), (9, "Expert"),
    ])
    def test_proficiency_tier(self, badges, tier):
        assert proficiency_tier(badges) == tier

    def test_progress_percentage(self):
        assert progress_percentage(1, 2) == 50
        assert progress_percentage(1, 3) == 33
        assert progress_percentage(5, 2) == 100
        assert progress_percentage(2, 0) == 100
        assert progress_percentage(0, 0) == 0

    def test_study_time_is_per_distinct_course(self):
        assert estimate_study_minutes(0) == 0
        assert estimate_study_minutes(3) == 105

    def test_weekly_engagement(self, now):
        events = [make_event("page_view", now) for _ in range(10)]
        events.append(make_event("page_view", days_ago(now, 8)))

        assert weekly_engagement(events, now=now) == 1


class TestLearnerViews:

    def test_progress_view(self, now):
        events = [
            make_event("course_view", now, session_id="a", courseId=1, courseTitle="Intro"),
            make_event("video_play", now, session_id="a", courseId=1),
            make_event("text_content_view", days_ago(now, 1), session_id="b", courseId=2),
            make_event("quiz_complete", days_ago(now, 1), session_id="b", courseId=1, score=8, totalQuestions=10),
        ]

        progress = summarize_progress(events, today=now.date())

        assert progress.totalSessions == 2
        assert progress.coursesViewed == [1]
        assert len(progress.quizzesTaken) == 1
        assert [video.courseId for video in progress.videoWatched] == [1]
        assert [text.courseId for text in progress.textContentViewed] == [2]
        assert _titles(progress.achievements) == ["First Steps", "Quiz Master", "High Achiever", "Media Learner"]
        assert progress.learningStreak == 2
        assert progress.activeDays == 2
        assert progress.totalTimeSpent == 35

    def test_dashboard_view(self, now):
        events = [make_event("course_view", now, courseId=course_id) for course_id in (1, 2, 3, 4)]
        events += [
            make_event("quiz_start", now, courseId=1),
            make_event("quiz_complete", now, courseId=1, score=9, totalQuestions=10),
            make_event("quiz_complete", now, courseId=2, score=4, totalQuestions=10),
        ]

        dashboard = summarize_dashboard(events, now=now)

        assert dashboard.totalLearningModules == 4
        assert dashboard.completedModules == 2
        assert dashboard.totalStudyHours == 2
        # First Steps, Quiz Master, High Achiever, Explorer, Assessment Taker
        assert dashboard.earnedBadges == 5
        assert dashboard.proficiencyLevel == "Skilled"
        assert dashboard.progressPercentage == 50
        assert dashboard.learningStreak == 1
        assert dashboard.recentProgress[0].action == "quiz_complete"
        assert len(dashboard.recentProgress) == 7

    def test_malformed_events_do_not_raise(self, now):
        events = [
            "not an event",
            None,
            {"eventType": "quiz_complete", "eventData": {"score": "abc", "totalQuestions": None}},
            {"eventType": "course_view", "eventData": "oops"},
            {"eventType": "quiz_complete", "eventData": {"score": 3, "totalQuestions": 0}},
            {"eventType": "quiz_complete", "eventData": {"courseId": 4, "courseTitle": 101, "score": 1, "totalQuestions": 1}},
            {"eventType": 5, "eventData": {}},
            make_event("course_view", now, courseId=1),
        ]

        dashboard = summarize_dashboard(events, now=now)
        summary = summarize_clickstream(events)
        progress = summarize_progress(events, today=now.date())

        assert dashboard.totalLearningModules == 1
        assert dashboard.completedModules == 3
        assert summary.totalEvents == 6
        assert summary.eventTypes["5"] == 1
        assert [quiz.percentage for quiz in summary.quizCompletions] == [0, 0, 100]
        assert summary.quizCompletions[2].courseTitle == "101"
        assert summary.topCourses["4 - 101"] == 1
        assert len(progress.quizzesTaken) == 3

    def test_naive_now_is_treated_as_utc(self):
        events = [make_event("page_view", "2024-03-15T08:00:00Z")]

        dashboard = summarize_dashboard(events, now=datetime(2024, 3, 15, 12, 0))

        assert dashboard.learningStreak == 1
        assert dashboard.weeklyEngagement == 0


def test_utc_reference_fixture(now):
    assert now.tzinfo is timezone.utc
