"""Study records, tasks, goals and review schedules."""

import uuid
from datetime import date, datetime
from enum import StrEnum

from pydantic import Field, field_validator

from study_tracker.models.base import CamelModel, UtcDatetime, utc_now


def new_record_id() -> str:
    """Opaque server-generated identifier, stable across edits."""
    return uuid.uuid4().hex


class StudySource(StrEnum):
    SCHOOL = "school"
    TUITION = "tuition"
    SELF_STUDY = "self-study"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StudyRecordIn(CamelModel):
    subject: str = ""
    topic: str = ""
    duration: int = Field(ge=0, description="Minutes studied")
    focus_level: int = Field(default=3, ge=1, le=5)
    energy_level: int = Field(default=3, ge=1, le=5)
    distractions: int = Field(default=0, ge=0)
    source: StudySource = StudySource.SELF_STUDY
    notes: str | None = None


class StudyRecord(StudyRecordIn):
    """Immutable, append-only log entry for one study session."""

    id: str = Field(default_factory=new_record_id)
    user_id: str
    created_at: UtcDatetime = Field(default_factory=utc_now)


class TaskIn(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    subject: str = ""
    due_date: date | None = None
    priority: Priority = Priority.MEDIUM


class TaskUpdate(CamelModel):
    title: str | None = None
    description: str | None = None
    subject: str | None = None
    due_date: date | None = None
    priority: Priority | None = None
    completed: bool | None = None


class Task(TaskIn):
    id: str = Field(default_factory=new_record_id)
    user_id: str
    completed: bool = False
    # Set on first completion; never cleared
    xp_awarded: bool = False
    created_at: UtcDatetime = Field(default_factory=utc_now)


class GoalIn(CamelModel):
    title: str = Field(min_length=1)
    description: str = ""
    target_date: date | None = None
    target_value: int = Field(default=100, ge=0)


class GoalUpdate(CamelModel):
    title: str | None = None
    description: str | None = None
    target_date: date | None = None
    target_value: int | None = Field(default=None, ge=0)
    progress: int | None = Field(default=None, ge=0, le=100)
    completed: bool | None = None


class Goal(GoalIn):
    id: str = Field(default_factory=new_record_id)
    user_id: str
    progress: int = Field(default=0, ge=0, le=100)
    completed: bool = False
    xp_awarded: bool = False
    created_at: UtcDatetime = Field(default_factory=utc_now)


# One review per offset in the spaced-repetition ladder.
REVIEWS_PER_SCHEDULE = 5


class ReviewScheduleIn(CamelModel):
    topic: str = Field(min_length=1)
    # Left as a raw string when it does not parse so the scheduler can reject it.
    studied_at: datetime | str | None = None


class ReviewCompleteIn(CamelModel):
    review_date: datetime | str


class ReviewSchedule(CamelModel):
    id: str = Field(default_factory=new_record_id)
    user_id: str
    topic: str
    studied_at: UtcDatetime
    reviews: list[UtcDatetime]
    completed_reviews: list[UtcDatetime] = Field(default_factory=list)
    created_at: UtcDatetime = Field(default_factory=utc_now)

    @field_validator("reviews")
    @classmethod
    def reviews_form_a_ladder(cls, reviews: list[datetime]) -> list[datetime]:
        if len(reviews) != REVIEWS_PER_SCHEDULE:
            raise ValueError(f"expected {REVIEWS_PER_SCHEDULE} reviews, got {len(reviews)}")
        if reviews != sorted(reviews):
            raise ValueError("reviews must be in ascending order")
        return reviews


class DueReview(ReviewSchedule):
    next_due: UtcDatetime


DEFAULT_SUBJECTS: tuple[str, ...] = (
    "Mathematics",
    "Physics",
    "Chemistry",
    "Biology",
    "English",
    "History",
    "Geography",
    "Computer Science",
    "Economics",
    "Accounting",
    "Business Studies",
    "Political Science",
    "Sociology",
    "Psychology",
    "Philosophy",
    "Literature",
)


class SubjectIn(CamelModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("subject name must not be blank")
        return name


class Subject(SubjectIn):
    """A subject label offered when logging sessions and tasks."""

    id: str = Field(default_factory=new_record_id)
    user_id: str
    created_at: UtcDatetime = Field(default_factory=utc_now)
