"""XP, streak and level progression.

Every function here is pure: it takes the current profile snapshot plus the
event details and returns a ``LedgerUpdate`` describing the new values. Callers
persist the result with ``LedgerUpdate.apply_to``.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from study_tracker.errors import InvalidInput
from study_tracker.models.base import ensure_utc
from study_tracker.models.profile import XP_PER_LEVEL, UserProfile

STUDY_XP_PER_BLOCK = 10
STUDY_BLOCK_MINUTES = 15
TASK_COMPLETION_XP = 20
GOAL_COMPLETION_XP = 100
REVIEW_COMPLETION_XP = 15
ONBOARDING_BONUS_XP = 50


@dataclass(frozen=True)
class LedgerUpdate:
    """New progression values produced by one event."""

    xp: int
    xp_gained: int
    streak: int
    last_study_date: datetime | None

    def apply_to(self, profile: UserProfile) -> UserProfile:
        return profile.model_copy(
            update={
                "xp": self.xp,
                "streak": self.streak,
                "last_study_date": self.last_study_date,
            }
        )


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def level_progress(xp: int) -> float:
    return (xp % XP_PER_LEVEL) / XP_PER_LEVEL


def study_session_xp(duration_minutes: int) -> int:
    """10 XP per full 15 minutes studied."""
    if duration_minutes < 0:
        raise InvalidInput("duration must not be negative")
    return (duration_minutes // STUDY_BLOCK_MINUTES) * STUDY_XP_PER_BLOCK


def _utc_date(instant: datetime) -> date:
    return ensure_utc(instant).date()


def streak_transition(streak: int, last_study_date: datetime | None, now: datetime) -> int:
    """Compute the streak after a study session logged at ``now``.

    Dates compare as UTC calendar days. Same day keeps the streak, the next
    day extends it, anything else (including no previous session) restarts at 1.
    """
    today = _utc_date(now)
    if last_study_date is None:
        return 1
    last = _utc_date(last_study_date)
    if last == today:
        return streak
    if last == today - timedelta(days=1):
        return streak + 1
    return 1


def _xp_only(profile: UserProfile, delta: int) -> LedgerUpdate:
    return LedgerUpdate(
        xp=profile.xp + delta,
        xp_gained=delta,
        streak=profile.streak,
        last_study_date=profile.last_study_date,
    )


def apply_study_session_xp(
    profile: UserProfile, duration_minutes: int, now: datetime
) -> LedgerUpdate:
    """Credit a logged study session. ``last_study_date`` always moves to ``now``."""
    gained = study_session_xp(duration_minutes)
    return LedgerUpdate(
        xp=profile.xp + gained,
        xp_gained=gained,
        streak=streak_transition(profile.streak, profile.last_study_date, now),
        last_study_date=ensure_utc(now),
    )


def _completion_delta(was_completed: bool, now_completed: bool, award: int) -> int:
    return award if now_completed and not was_completed else 0


def apply_task_completion_xp(
    profile: UserProfile, was_completed: bool, now_completed: bool
) -> LedgerUpdate:
    return _xp_only(
        profile, _completion_delta(was_completed, now_completed, TASK_COMPLETION_XP)
    )


def apply_goal_completion_xp(
    profile: UserProfile, was_completed: bool, now_completed: bool
) -> LedgerUpdate:
    return _xp_only(
        profile, _completion_delta(was_completed, now_completed, GOAL_COMPLETION_XP)
    )


def apply_review_completion_xp(
    profile: UserProfile, already_completed: bool = False
) -> LedgerUpdate:
    """+15 XP for a review; a repeated completion of the same review earns nothing."""
    return _xp_only(profile, 0 if already_completed else REVIEW_COMPLETION_XP)


def apply_onboarding_bonus(profile: UserProfile, already_awarded: bool) -> LedgerUpdate:
    """One-time bonus for finishing the routine setup."""
    return _xp_only(profile, 0 if already_awarded else ONBOARDING_BONUS_XP)
