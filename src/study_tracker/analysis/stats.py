"""Study analytics derived from records, tasks and goals."""

from collections.abc import Sequence
from typing import Any

from study_tracker.models.records import Goal, StudyRecord, Task

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
FOCUS_TREND_SESSIONS = 7


def format_minutes(total_minutes: int) -> str:
    """Render minutes as ``"{hours}h {minutes}m"``."""
    return f"{total_minutes // 60}h {total_minutes % 60}m"


def weekly_minutes(records: Sequence[StudyRecord]) -> list[dict[str, Any]]:
    """Minutes studied per weekday (UTC), Sunday first."""
    buckets = {day: 0 for day in WEEKDAYS}
    for record in records:
        # datetime.weekday() is Monday=0; shift so Sunday=0
        day = WEEKDAYS[(record.created_at.weekday() + 1) % 7]
        buckets[day] += record.duration
    return [{"day": day, "minutes": minutes} for day, minutes in buckets.items()]


def subject_minutes(records: Sequence[StudyRecord]) -> list[dict[str, Any]]:
    totals: dict[str, int] = {}
    for record in records:
        subject = record.subject or "Other"
        totals[subject] = totals.get(subject, 0) + record.duration
    return [{"subject": s, "minutes": m} for s, m in totals.items()]


def focus_trend(records: Sequence[StudyRecord]) -> list[dict[str, Any]]:
    """Focus and energy for the most recent sessions, oldest first."""
    recent = sorted(records, key=lambda r: r.created_at)[-FOCUS_TREND_SESSIONS:]
    return [
        {
            "session": f"Session {i}",
            "focus": r.focus_level,
            "energy": r.energy_level,
        }
        for i, r in enumerate(recent, start=1)
    ]


def build_summary(
    records: Sequence[StudyRecord],
    tasks: Sequence[Task],
    goals: Sequence[Goal],
) -> dict[str, Any]:
    """Dashboard statistics for one user.

    Args:
        records: The user's study records in any order.
        tasks: The user's tasks.
        goals: The user's goals.

    Returns:
        Dict of totals, averages and chart series.
    """
    total = sum(r.duration for r in records)
    count = len(records)
    completed_tasks = sum(1 for t in tasks if t.completed)
    completed_goals = sum(1 for g in goals if g.completed)
    return {
        "totalMinutes": total,
        "totalHoursLabel": format_minutes(total),
        "sessionCount": count,
        "averageFocus": round(sum(r.focus_level for r in records) / count, 1) if count else 0,
        "averageSessionMinutes": round(total / count) if count else 0,
        "taskCompletionRate": round(completed_tasks / len(tasks) * 100) if tasks else 0,
        "activeGoals": len(goals) - completed_goals,
        "completedGoals": completed_goals,
        "weeklyMinutes": weekly_minutes(records),
        "subjectMinutes": subject_minutes(records),
        "focusTrend": focus_trend(records),
    }
