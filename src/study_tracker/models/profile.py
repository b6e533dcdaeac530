"""User profile and onboarding routine models."""

from enum import StrEnum

from pydantic import Field, computed_field

from study_tracker.models.base import CamelModel, UtcDatetime, utc_now

XP_PER_LEVEL = 1000


class UserProfile(CamelModel):
    """Per-user progression state. ``level`` is always derived from ``xp``."""

    name: str = ""
    email: str = ""
    created_at: UtcDatetime = Field(default_factory=utc_now)
    xp: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    last_study_date: UtcDatetime | None = None
    onboarding_complete: bool = False
    achievements: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def level(self) -> int:
        return self.xp // XP_PER_LEVEL + 1

    @computed_field(alias="levelProgress")
    @property
    def level_progress(self) -> float:
        """Fraction of the way to the next level (0.0 - 1.0)."""
        return (self.xp % XP_PER_LEVEL) / XP_PER_LEVEL

    def to_store(self) -> dict:
        return self.model_dump(
            mode="json", by_alias=True, exclude={"level", "level_progress"}
        )


class ProfileUpdate(CamelModel):
    """Client-editable profile fields. Progression fields are ledger-owned."""

    name: str | None = None
    email: str | None = None


class SignupRequest(CamelModel):
    email: str = ""
    password: str = ""
    name: str = ""


class StudentType(StrEnum):
    SCHOOL = "school"
    COLLEGE = "college"


class RoutineIn(CamelModel):
    """Onboarding answers describing the student's weekly routine."""

    student_type: StudentType
    number_of_tuitions: int = Field(default=0, ge=0)
    school_days_per_week: int = Field(default=5, ge=0, le=7)
    school_hours_per_day: float = Field(default=6, ge=0, le=24)
    tuition_hours_per_day: float = Field(default=2, ge=0, le=24)
    travel_time_school: int = Field(default=30, ge=0)  # minutes
    travel_time_tuition: int = Field(default=20, ge=0)  # minutes
    tuition_days: list[int] = Field(default_factory=list)
    # Keyed by weekday index 0 (Monday) .. 6 (Sunday)
    tuition_subjects: dict[int, list[str]] = Field(default_factory=dict)


class Routine(RoutineIn):
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)
