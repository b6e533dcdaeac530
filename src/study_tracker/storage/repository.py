"""Typed access to study tracker records over a key/value store."""

from datetime import datetime, timedelta

from study_tracker.errors import NotFound
from study_tracker.models.profile import Routine, UserProfile
from study_tracker.models.records import (
    DEFAULT_SUBJECTS,
    Goal,
    ReviewSchedule,
    StudyRecord,
    Subject,
    Task,
)
from study_tracker.storage.kv_store import KeyValueStore


def profile_key(user_id: str) -> str:
    return f"user_profile:{user_id}"


def routine_key(user_id: str) -> str:
    return f"user_routine:{user_id}"


def subjects_seeded_key(user_id: str) -> str:
    return f"subject_defaults:{user_id}"


def record_key(kind: str, user_id: str, record_id: str = "") -> str:
    """Per-user record key; with an empty ``record_id`` it is the listing prefix."""
    return f"{kind}:{user_id}:{record_id}"


class StudyRepository:
    """Loads and saves records. Every record key embeds its owner's user id,
    so another user's record is indistinguishable from a missing one."""

    STUDY_RECORD = "study_record"
    TASK = "task"
    GOAL = "goal"
    REVIEW = "review"
    SUBJECT = "subject"

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # Profile

    def get_profile(self, user_id: str) -> UserProfile:
        data = self.store.get(profile_key(user_id))
        if data is None:
            raise NotFound("Profile not found")
        return UserProfile.model_validate(data)

    def load_profile(self, user_id: str) -> UserProfile:
        """Profile for ledger updates; a blank profile when none exists yet."""
        data = self.store.get(profile_key(user_id))
        if data is None:
            return UserProfile()
        return UserProfile.model_validate(data)

    def save_profile(self, user_id: str, profile: UserProfile) -> None:
        self.store.set(profile_key(user_id), profile.to_store())

    # Routine

    def get_routine(self, user_id: str) -> Routine | None:
        data = self.store.get(routine_key(user_id))
        return Routine.model_validate(data) if data is not None else None

    def save_routine(self, user_id: str, routine: Routine) -> None:
        self.store.set(routine_key(user_id), routine.to_store())

    # Study records

    def add_study_record(self, record: StudyRecord) -> None:
        self.store.set(record_key(self.STUDY_RECORD, record.user_id, record.id), record.to_store())

    def list_study_records(self, user_id: str) -> list[StudyRecord]:
        """Study records, newest first."""
        records = [
            StudyRecord.model_validate(d)
            for d in self.store.get_by_prefix(record_key(self.STUDY_RECORD, user_id))
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    # Tasks

    def save_task(self, task: Task) -> None:
        self.store.set(record_key(self.TASK, task.user_id, task.id), task.to_store())

    def get_task(self, user_id: str, task_id: str) -> Task:
        data = self.store.get(record_key(self.TASK, user_id, task_id))
        if data is None:
            raise NotFound("Task not found")
        return Task.model_validate(data)

    def list_tasks(self, user_id: str) -> list[Task]:
        tasks = [
            Task.model_validate(d)
            for d in self.store.get_by_prefix(record_key(self.TASK, user_id))
        ]
        return sorted(tasks, key=lambda t: t.created_at)

    def delete_task(self, user_id: str, task_id: str) -> None:
        self.get_task(user_id, task_id)
        self.store.delete(record_key(self.TASK, user_id, task_id))

    # Goals

    def save_goal(self, goal: Goal) -> None:
        self.store.set(record_key(self.GOAL, goal.user_id, goal.id), goal.to_store())

    def get_goal(self, user_id: str, goal_id: str) -> Goal:
        data = self.store.get(record_key(self.GOAL, user_id, goal_id))
        if data is None:
            raise NotFound("Goal not found")
        return Goal.model_validate(data)

    def list_goals(self, user_id: str) -> list[Goal]:
        goals = [
            Goal.model_validate(d)
            for d in self.store.get_by_prefix(record_key(self.GOAL, user_id))
        ]
        return sorted(goals, key=lambda g: g.created_at)

    def delete_goal(self, user_id: str, goal_id: str) -> None:
        self.get_goal(user_id, goal_id)
        self.store.delete(record_key(self.GOAL, user_id, goal_id))

    # Review schedules

    def save_review(self, schedule: ReviewSchedule) -> None:
        self.store.set(
            record_key(self.REVIEW, schedule.user_id, schedule.id), schedule.to_store()
        )

    def get_review(self, user_id: str, schedule_id: str) -> ReviewSchedule:
        data = self.store.get(record_key(self.REVIEW, user_id, schedule_id))
        if data is None:
            raise NotFound("Review not found")
        return ReviewSchedule.model_validate(data)

    def list_reviews(self, user_id: str) -> list[ReviewSchedule]:
        reviews = [
            ReviewSchedule.model_validate(d)
            for d in self.store.get_by_prefix(record_key(self.REVIEW, user_id))
        ]
        return sorted(reviews, key=lambda r: r.created_at)

    # Subjects

    def save_subject(self, subject: Subject) -> None:
        self.store.set(
            record_key(self.SUBJECT, subject.user_id, subject.id), subject.to_store()
        )

    def get_subject(self, user_id: str, subject_id: str) -> Subject:
        data = self.store.get(record_key(self.SUBJECT, user_id, subject_id))
        if data is None:
            raise NotFound("Subject not found")
        return Subject.model_validate(data)

    def list_subjects(self, user_id: str, now: datetime) -> list[Subject]:
        """Subjects in creation order. The default list is seeded on first use;
        a user who later deletes every subject keeps an empty list."""
        subjects = [
            Subject.model_validate(d)
            for d in self.store.get_by_prefix(record_key(self.SUBJECT, user_id))
        ]
        if not subjects and self.store.get(subjects_seeded_key(user_id)) is None:
            return self.reset_subjects(user_id, now)
        return sorted(subjects, key=lambda s: s.created_at)

    def delete_subject(self, user_id: str, subject_id: str) -> None:
        self.get_subject(user_id, subject_id)
        self.store.delete(record_key(self.SUBJECT, user_id, subject_id))

    def reset_subjects(self, user_id: str, now: datetime) -> list[Subject]:
        """Replace the user's subjects with the defaults."""
        for data in self.store.get_by_prefix(record_key(self.SUBJECT, user_id)):
            self.store.delete(record_key(self.SUBJECT, user_id, data["id"]))
        # Stamped just before `now`, in list order, so they sort ahead of new subjects
        count = len(DEFAULT_SUBJECTS)
        subjects = [
            Subject(
                user_id=user_id, name=name,
                created_at=now - timedelta(microseconds=count - i),
            )
            for i, name in enumerate(DEFAULT_SUBJECTS)
        ]
        for subject in subjects:
            self.save_subject(subject)
        self.store.set(subjects_seeded_key(user_id), {"seededAt": now.isoformat()})
        return subjects
