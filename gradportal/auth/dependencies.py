from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from gradportal.auth.client import SessionUser
from gradportal.backend_client import BackendClient, get_backend_client
from gradportal.core import config
from gradportal.core.exceptions import BackendError
from gradportal.pages.cache import PageCache


def get_session_token(request: Request) -> str | None:
    return request.cookies.get(config.SESSION_COOKIE_NAME) or None


@lru_cache
def get_page_cache() -> PageCache:
    return PageCache()


async def get_current_user(
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
) -> SessionUser:
    try:
        user = await backend.auth.get_current_session(token)
    except BackendError as exc:
        raise HTTPException(status_code=503, detail="Session service unavailable") from exc
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
