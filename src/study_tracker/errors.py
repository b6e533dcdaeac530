"""Domain error kinds raised by core functions and mapped to HTTP responses."""


class StudyTrackerError(Exception):
    """Base class for study tracker errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(StudyTrackerError):
    """Malformed or missing required input (bad timestamp, negative duration)."""

    status_code = 400


class NotFound(StudyTrackerError):
    """Referenced record is absent or belongs to another user."""

    status_code = 404


class Conflict(StudyTrackerError):
    """The write collides with an existing record, such as a duplicate subject name."""

    status_code = 409
