"""FastAPI dependencies shared by the API routes."""

from collections.abc import Callable
from datetime import datetime

from fastapi import Depends, Header, HTTPException, Request

from study_tracker.auth import AuthBackend
from study_tracker.models.base import utc_now
from study_tracker.storage.repository import StudyRepository


def get_repository(request: Request) -> StudyRepository:
    return StudyRepository(request.app.state.store)


def get_auth(request: Request) -> AuthBackend:
    return request.app.state.auth


def get_clock() -> Callable[[], datetime]:
    """Source of "now" for ledger and scheduler calls."""
    return utc_now


async def current_user_id(
    authorization: str | None = Header(default=None),
    auth: AuthBackend = Depends(get_auth),
) -> str:
    """Resolve the ``Authorization: Bearer <token>`` header to a user id."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="No token provided")
    user_id = await auth.verify(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id
