"""Bearer-token authentication delegated to Supabase Auth."""

import abc
import uuid

import httpx
import structlog

from study_tracker.errors import InvalidInput

logger = structlog.get_logger()


class AuthBackend(abc.ABC):
    """Resolves access tokens to user ids and creates accounts."""

    @abc.abstractmethod
    async def verify(self, token: str) -> str | None:
        """Return the user id for ``token``, or None when it is not valid."""

    @abc.abstractmethod
    async def create_user(self, email: str, password: str, name: str) -> str:
        """Create an account and return its user id."""


class StaticTokenAuth(AuthBackend):
    """Fixed token -> user id table for local development and tests."""

    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self.tokens = dict(tokens or {})
        self.users: dict[str, dict[str, str]] = {}

    async def verify(self, token: str) -> str | None:
        return self.tokens.get(token)

    async def create_user(self, email: str, password: str, name: str) -> str:
        if any(u["email"] == email for u in self.users.values()):
            raise InvalidInput("A user with this email address has already been registered")
        user_id = str(uuid.uuid4())
        self.users[user_id] = {"email": email, "name": name}
        return user_id


class SupabaseAuth(AuthBackend):
    """Supabase GoTrue endpoints, called with the service role key."""

    def __init__(self, url: str, service_role_key: str) -> None:
        self.base_url = f"{url.rstrip('/')}/auth/v1"
        self.service_role_key = service_role_key

    async def verify(self, token: str) -> str | None:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.base_url}/user",
                headers={"apikey": self.service_role_key, "Authorization": f"Bearer {token}"},
            )
        if response.status_code != 200:
            logger.info("token_rejected", status=response.status_code)
            return None
        return response.json().get("id")

    async def create_user(self, email: str, password: str, name: str) -> str:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.base_url}/admin/users",
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {self.service_role_key}",
                },
                json={
                    "email": email,
                    "password": password,
                    "user_metadata": {"name": name},
                    # No mail server is configured, so confirm immediately
                    "email_confirm": True,
                },
            )
        if response.status_code >= 400:
            body = response.json() if response.content else {}
            message = body.get("msg") or body.get("message") or "Signup failed"
            logger.warning("signup_failed", status=response.status_code, error=message)
            raise InvalidInput(message)
        return response.json()["id"]


def create_auth(settings) -> AuthBackend:
    if settings.supabase_configured:
        return SupabaseAuth(settings.supabase_url, settings.supabase_service_role_key)
    logger.warning("supabase_not_configured", fallback="static_tokens")
    return StaticTokenAuth(settings.static_tokens)
