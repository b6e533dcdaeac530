"""Spaced-repetition review scheduling."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from study_tracker.errors import InvalidInput
from study_tracker.models.base import ensure_utc, utc_now
from study_tracker.models.records import DueReview, ReviewSchedule

# Days after the study event at which each review falls.
REVIEW_OFFSETS_DAYS: tuple[int, ...] = (1, 3, 7, 14, 30)

_SECONDS_PER_DAY = 86400


def parse_instant(value: datetime | str | None, field: str = "timestamp") -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: datetime or ISO-8601 string. A trailing ``Z`` is accepted.
        field: Field name used in the error message.

    Raises:
        InvalidInput: If the value is missing or cannot be parsed.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} is required")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInput(f"{field} is not a valid ISO-8601 timestamp: {value!r}")
    return ensure_utc(parsed)


def generate_review_schedule(studied_at: datetime | str | None = None) -> list[datetime]:
    """Produce the five review instants for a study event.

    Offsets are fixed-second arithmetic (``offset * 86400`` seconds), not
    calendar-aware.

    Args:
        studied_at: When the topic was studied. ``None`` means now; an
            unparseable value raises ``InvalidInput``.

    Returns:
        Exactly five ascending UTC datetimes.
    """
    base = utc_now() if studied_at is None else parse_instant(studied_at, "studiedAt")
    return [
        base + timedelta(seconds=days * _SECONDS_PER_DAY) for days in REVIEW_OFFSETS_DAYS
    ]


def next_due(schedule: ReviewSchedule, now: datetime) -> datetime | None:
    """Earliest review not yet completed whose time has arrived, if any."""
    now = ensure_utc(now)
    completed = set(schedule.completed_reviews)
    for review_at in sorted(schedule.reviews):
        if review_at not in completed and review_at <= now:
            return review_at
    return None


def select_due_reviews(
    schedules: Iterable[ReviewSchedule], now: datetime | str
) -> list[DueReview]:
    """Select schedules with a review due at ``now``.

    Results are ordered by schedule creation time; ties keep input order.
    """
    now = parse_instant(now, "now")
    due = []
    for schedule in sorted(schedules, key=lambda s: s.created_at):
        review_at = next_due(schedule, now)
        if review_at is not None:
            due.append(DueReview(**dict(schedule), next_due=review_at))
    return due


def complete_review(
    schedule: ReviewSchedule, review_at: datetime | str
) -> tuple[ReviewSchedule, bool]:
    """Mark one review of a schedule as done.

    Returns:
        The updated schedule and whether the review was newly completed.
        Completing an already completed review leaves the schedule unchanged.

    Raises:
        InvalidInput: If ``review_at`` is not one of the schedule's reviews.
    """
    review_at = parse_instant(review_at, "reviewDate")
    if review_at not in schedule.reviews:
        raise InvalidInput(f"{review_at.isoformat()} is not a review of this schedule")
    if review_at in schedule.completed_reviews:
        return schedule, False
    updated = schedule.model_copy(
        update={"completed_reviews": [*schedule.completed_reviews, review_at]}
    )
    return updated, True
