from dataclasses import dataclass
from functools import lru_cache

from pydantic import ValidationError

from gradportal.auth.client import AuthClient
from gradportal.core.exceptions import BackendError
from gradportal.database import SessionLocal
from gradportal.profiles import ProfileRow, ProfileTable, create_user_profile


@dataclass
class BackendClient:
    """Typed access to the auth service and the ``profiles`` table."""

    auth: AuthClient
    profiles: ProfileTable


def create_backend_client(session_factory) -> BackendClient:
    return BackendClient(
        auth=AuthClient(session_factory),
        profiles=ProfileTable(session_factory),
    )


@lru_cache
def get_backend_client() -> BackendClient:
    return create_backend_client(SessionLocal)


async def create_account(
    backend: BackendClient,
    email: str,
    password: str,
    full_name: str,
    role: str | None = None,
    student_id: str | None = None,
) -> ProfileRow:
    """Create a sign-in account and its profile; the account is removed again if the profile is rejected."""
    user = await backend.auth.sign_up(email, password)
    try:
        return await backend.profiles.insert(
            create_user_profile(
                user_id=user.id,
                email=user.email,
                full_name=full_name,
                role=role,
                student_id=student_id,
            )
        )
    except (BackendError, ValidationError):
        await backend.auth.delete_account(user.id)
        raise
