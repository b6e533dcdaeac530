"""Daily time budget derived from the onboarding routine."""

from study_tracker.models.profile import RoutineIn

HOURS_IN_DAY = 24
SLEEP_HOURS = 8
MEALS_AND_PERSONAL_HOURS = 3


def available_study_hours(routine: RoutineIn) -> float:
    """Hours left per day after sleep, personal time, classes and travel."""
    travel_hours = (routine.travel_time_school + routine.travel_time_tuition) / 60
    available = (
        HOURS_IN_DAY
        - SLEEP_HOURS
        - MEALS_AND_PERSONAL_HOURS
        - routine.school_hours_per_day
        - routine.tuition_hours_per_day
        - travel_hours
    )
    return round(max(0.0, available), 1)
