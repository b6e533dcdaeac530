"""Tests for analytics and routine time budgeting."""

from datetime import datetime, timedelta, timezone

from study_tracker.analysis.stats import (
    build_summary,
    focus_trend,
    format_minutes,
    subject_minutes,
    weekly_minutes,
)
from study_tracker.core.routine import available_study_hours
from study_tracker.models.profile import RoutineIn
from study_tracker.models.records import Goal, StudyRecord, Task

SUNDAY = datetime(2024, 1, 7, 18, tzinfo=timezone.utc)


def record(duration=30, subject="Math", focus=3, energy=3, at=SUNDAY):
    return StudyRecord(
        user_id="u", subject=subject, duration=duration,
        focus_level=focus, energy_level=energy, created_at=at,
    )


def test_format_minutes():
    assert format_minutes(0) == "0h 0m"
    assert format_minutes(135) == "2h 15m"


def test_weekly_minutes_sunday_first():
    data = weekly_minutes([record(20), record(40, at=SUNDAY + timedelta(days=2))])
    assert [d["day"] for d in data] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert data[0]["minutes"] == 20
    assert data[2]["minutes"] == 40


def test_subject_minutes():
    data = subject_minutes([record(20), record(10, subject="Art"), record(5)])
    assert data == [{"subject": "Math", "minutes": 25}, {"subject": "Art", "minutes": 10}]


def test_subject_minutes_unnamed_subject():
    assert subject_minutes([record(15, subject="")]) == [{"subject": "Other", "minutes": 15}]


def test_focus_trend_last_seven_chronological():
    records = [record(focus=(i % 5) + 1, at=SUNDAY + timedelta(hours=i)) for i in range(10)]
    trend = focus_trend(list(reversed(records)))
    assert len(trend) == 7
    assert trend[0] == {"session": "Session 1", "focus": 4, "energy": 3}
    assert [t["focus"] for t in trend] == [4, 5, 1, 2, 3, 4, 5]


def test_summary_empty():
    summary = build_summary([], [], [])
    assert summary["totalMinutes"] == 0
    assert summary["averageFocus"] == 0
    assert summary["averageSessionMinutes"] == 0
    assert summary["taskCompletionRate"] == 0
    assert summary["focusTrend"] == []


def test_summary_totals():
    tasks = [Task(user_id="u", title=t, completed=t == "a") for t in "abc"]
    goals = [Goal(user_id="u", title="g1", completed=True), Goal(user_id="u", title="g2")]
    summary = build_summary([record(50, focus=5), record(25, focus=2)], tasks, goals)
    assert summary["totalMinutes"] == 75
    assert summary["sessionCount"] == 2
    assert summary["averageFocus"] == 3.5
    assert summary["averageSessionMinutes"] == 38
    assert summary["taskCompletionRate"] == 33
    assert summary["activeGoals"] == 1
    assert summary["completedGoals"] == 1


class TestAvailableStudyHours:
    def test_defaults(self):
        # 24 - 8 - 3 - 6 - 2 - 50/60
        assert available_study_hours(RoutineIn(student_type="school")) == 4.2

    def test_never_negative(self):
        routine = RoutineIn(
            student_type="college", school_hours_per_day=12, tuition_hours_per_day=4
        )
        assert available_study_hours(routine) == 0.0
