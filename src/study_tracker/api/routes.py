"""REST API routes for profiles, routines, study records, tasks, goals, reviews and subjects.

Profile updates are read-modify-write without locking; two concurrent requests
for the same user can overwrite each other's XP change.
"""

from collections.abc import Callable
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends

from study_tracker.analysis.stats import build_summary
from study_tracker.api.dependencies import (
    current_user_id,
    get_auth,
    get_clock,
    get_repository,
)
from study_tracker.auth import AuthBackend
from study_tracker.core import ledger, scheduler
from study_tracker.core.routine import available_study_hours
from study_tracker.errors import Conflict, InvalidInput
from study_tracker.models.profile import (
    ProfileUpdate,
    Routine,
    RoutineIn,
    SignupRequest,
    UserProfile,
)
from study_tracker.models.records import (
    Goal,
    GoalIn,
    GoalUpdate,
    ReviewCompleteIn,
    ReviewSchedule,
    ReviewScheduleIn,
    StudyRecord,
    StudyRecordIn,
    Subject,
    SubjectIn,
    Task,
    TaskIn,
    TaskUpdate,
)
from study_tracker.storage.repository import StudyRepository

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

Clock = Callable[[], datetime]


def _changes(update) -> dict:
    """Fields the client actually sent, ignoring explicit nulls."""
    return {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}


def _credit(
    repo: StudyRepository,
    user_id: str,
    profile: UserProfile,
    update: ledger.LedgerUpdate,
    reason: str,
) -> UserProfile:
    profile = update.apply_to(profile)
    if update.xp_gained:
        repo.save_profile(user_id, profile)
        logger.info(
            "xp_awarded",
            user_id=user_id,
            reason=reason,
            xp_gained=update.xp_gained,
            xp=profile.xp,
            level=profile.level,
        )
    return profile


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


# Auth & profile


@router.post("/signup")
async def signup(
    payload: SignupRequest,
    auth: AuthBackend = Depends(get_auth),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Create an account and its initial profile."""
    if not payload.email or not payload.password or not payload.name:
        raise InvalidInput("Missing required fields")
    user_id = await auth.create_user(payload.email, payload.password, payload.name)
    profile = UserProfile(name=payload.name, email=payload.email, created_at=clock())
    repo.save_profile(user_id, profile)
    logger.info("user_signed_up", user_id=user_id)
    return {"success": True, "userId": user_id, "profile": profile}


@router.get("/profile")
def get_profile(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    return {"profile": repo.get_profile(user_id)}


@router.post("/profile")
def update_profile(
    payload: ProfileUpdate,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    """Update name/email. XP, streak and onboarding state are not client-writable."""
    profile = repo.load_profile(user_id).model_copy(update=_changes(payload))
    repo.save_profile(user_id, profile)
    return {"success": True, "profile": profile}


# Onboarding routine


@router.post("/routine")
def save_routine(
    payload: RoutineIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Store the routine and complete onboarding. The bonus is paid only once."""
    now = clock()
    existing = repo.get_routine(user_id)
    routine = Routine(
        **dict(payload),
        created_at=existing.created_at if existing else now,
        updated_at=now,
    )
    repo.save_routine(user_id, routine)

    profile = repo.load_profile(user_id)
    update = ledger.apply_onboarding_bonus(profile, already_awarded=profile.onboarding_complete)
    profile = update.apply_to(profile).model_copy(update={"onboarding_complete": True})
    repo.save_profile(user_id, profile)
    logger.info("routine_saved", user_id=user_id, xp_gained=update.xp_gained)
    return {"success": True, "xpGained": update.xp_gained, "profile": profile}


@router.get("/routine")
def get_routine(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    routine = repo.get_routine(user_id)
    return {
        "routine": routine,
        "availableStudyHours": available_study_hours(routine) if routine else None,
    }


# Study records


@router.post("/study-record")
def create_study_record(
    payload: StudyRecordIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Log a study session and credit XP and streak."""
    now = clock()
    record = StudyRecord(**dict(payload), user_id=user_id, created_at=now)
    repo.add_study_record(record)

    profile = repo.load_profile(user_id)
    update = ledger.apply_study_session_xp(profile, payload.duration, now)
    profile = update.apply_to(profile)
    repo.save_profile(user_id, profile)
    logger.info(
        "study_record_created",
        user_id=user_id,
        record_id=record.id,
        duration=record.duration,
        xp_gained=update.xp_gained,
        streak=update.streak,
    )
    return {
        "success": True,
        "recordId": record.id,
        "xpGained": update.xp_gained,
        "streak": update.streak,
        "profile": profile,
    }


@router.get("/study-records")
def list_study_records(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    return {"records": repo.list_study_records(user_id)}


# Goals


@router.post("/goal")
def create_goal(
    payload: GoalIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    goal = Goal(**dict(payload), user_id=user_id, created_at=clock())
    repo.save_goal(goal)
    return {"success": True, "goalId": goal.id, "goal": goal}


@router.get("/goals")
def list_goals(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    return {"goals": repo.list_goals(user_id)}


@router.put("/goal/{goal_id}")
def update_goal(
    goal_id: str,
    payload: GoalUpdate,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    """Update a goal. Reaching 100% progress completes it, and completing it fills progress."""
    goal = repo.get_goal(user_id, goal_id)
    changes = _changes(payload)
    if changes.get("completed") is True:
        changes["progress"] = 100
    elif "progress" in changes and "completed" not in changes:
        changes["completed"] = changes["progress"] == 100
    updated = goal.model_copy(update=changes)

    profile = repo.load_profile(user_id)
    # xp_awarded survives reopening, so completing again pays nothing
    update = ledger.apply_goal_completion_xp(profile, goal.xp_awarded, updated.completed)
    updated = updated.model_copy(update={"xp_awarded": goal.xp_awarded or updated.completed})
    repo.save_goal(updated)
    _credit(repo, user_id, profile, update, reason="goal_completed")
    return {"success": True, "goal": updated, "xpGained": update.xp_gained}


@router.delete("/goal/{goal_id}")
def delete_goal(
    goal_id: str,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    repo.delete_goal(user_id, goal_id)
    return {"success": True}


# Tasks


@router.post("/task")
def create_task(
    payload: TaskIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    task = Task(**dict(payload), user_id=user_id, created_at=clock())
    repo.save_task(task)
    return {"success": True, "taskId": task.id, "task": task}


@router.get("/tasks")
def list_tasks(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    return {"tasks": repo.list_tasks(user_id)}


@router.put("/task/{task_id}")
def update_task(
    task_id: str,
    payload: TaskUpdate,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    task = repo.get_task(user_id, task_id)
    updated = task.model_copy(update=_changes(payload))

    profile = repo.load_profile(user_id)
    update = ledger.apply_task_completion_xp(profile, task.xp_awarded, updated.completed)
    updated = updated.model_copy(update={"xp_awarded": task.xp_awarded or updated.completed})
    repo.save_task(updated)
    _credit(repo, user_id, profile, update, reason="task_completed")
    return {"success": True, "task": updated, "xpGained": update.xp_gained}


@router.delete("/task/{task_id}")
def delete_task(
    task_id: str,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    repo.delete_task(user_id, task_id)
    return {"success": True}


# Spaced repetition


@router.post("/review-schedule")
def create_review_schedule(
    payload: ReviewScheduleIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    now = clock()
    studied_at = (
        now if payload.studied_at is None
        else scheduler.parse_instant(payload.studied_at, "studiedAt")
    )
    schedule = ReviewSchedule(
        user_id=user_id,
        topic=payload.topic,
        studied_at=studied_at,
        reviews=scheduler.generate_review_schedule(studied_at),
        created_at=now,
    )
    repo.save_review(schedule)
    logger.info("review_scheduled", user_id=user_id, schedule_id=schedule.id, topic=schedule.topic)
    return {"success": True, "scheduleId": schedule.id, "reviews": schedule.reviews}


@router.get("/reviews")
def list_reviews(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    return {"reviews": repo.list_reviews(user_id)}


@router.get("/reviews-due")
def list_due_reviews(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    return {"reviews": scheduler.select_due_reviews(repo.list_reviews(user_id), clock())}


@router.post("/review-complete/{schedule_id}")
def complete_review(
    schedule_id: str,
    payload: ReviewCompleteIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    """Mark a review done. Repeating a completed review earns no XP."""
    schedule = repo.get_review(user_id, schedule_id)
    schedule, newly_completed = scheduler.complete_review(schedule, payload.review_date)
    if newly_completed:
        repo.save_review(schedule)

    profile = repo.load_profile(user_id)
    update = ledger.apply_review_completion_xp(profile, already_completed=not newly_completed)
    _credit(repo, user_id, profile, update, reason="review_completed")
    return {"success": True, "review": schedule, "xpGained": update.xp_gained}


# Subjects


def _ensure_unique_subject(subjects: list[Subject], name: str, subject_id: str = "") -> None:
    if any(s.name.casefold() == name.casefold() and s.id != subject_id for s in subjects):
        raise Conflict(f"Subject already exists: {name}")


@router.get("/subjects")
def list_subjects(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    return {"subjects": repo.list_subjects(user_id, clock())}


@router.post("/subject")
def create_subject(
    payload: SubjectIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Add a subject. Names are unique per user, ignoring case."""
    now = clock()
    _ensure_unique_subject(repo.list_subjects(user_id, now), payload.name)
    subject = Subject(name=payload.name, user_id=user_id, created_at=now)
    repo.save_subject(subject)
    logger.info("subject_created", user_id=user_id, subject_id=subject.id)
    return {"success": True, "subjectId": subject.id, "subject": subject}


@router.put("/subject/{subject_id}")
def rename_subject(
    subject_id: str,
    payload: SubjectIn,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Rename a subject. Records already logged keep the old name."""
    subject = repo.get_subject(user_id, subject_id)
    _ensure_unique_subject(repo.list_subjects(user_id, clock()), payload.name, subject_id)
    subject = subject.model_copy(update={"name": payload.name})
    repo.save_subject(subject)
    return {"success": True, "subject": subject}


@router.delete("/subject/{subject_id}")
def delete_subject(
    subject_id: str,
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    repo.delete_subject(user_id, subject_id)
    return {"success": True}


@router.post("/subjects/reset")
def reset_subjects(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
) -> dict:
    subjects = repo.reset_subjects(user_id, clock())
    logger.info("subjects_reset", user_id=user_id)
    return {"success": True, "subjects": subjects}


# Analytics


@router.get("/analytics")
def get_analytics(
    user_id: str = Depends(current_user_id),
    repo: StudyRepository = Depends(get_repository),
) -> dict:
    return build_summary(
        repo.list_study_records(user_id),
        repo.list_tasks(user_id),
        repo.list_goals(user_id),
    )
