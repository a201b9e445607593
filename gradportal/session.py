"""Observable store for the signed-in user of one browser session.

The value starts out unknown, is resolved by asking the auth service about the
session token, and afterwards changes only through :meth:`SessionContext.set_user`,
either when the owner re-checks it or when the auth service reports that the
token was signed out.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from gradportal.auth.client import AuthClient, AuthEvent, SessionUser
from gradportal.core.exceptions import BackendError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


SessionListener = Callable[["SessionUser | None"], None]


class SessionContext:
    def __init__(self, auth: AuthClient, token: str | None):
        self.token = token
        self.status = SessionStatus.UNKNOWN
        self.user: SessionUser | None = None
        self._auth = auth
        self._listeners: list[SessionListener] = []
        self._unsubscribe_auth = auth.on_session_change(self._on_auth_event)

    @property
    def resolved(self) -> bool:
        return self.status is not SessionStatus.UNKNOWN

    async def initialize(self) -> SessionUser | None:
        """Resolve the user behind ``token``; a failed lookup counts as signed out."""
        try:
            user = await self._auth.get_current_session(self.token)
        except BackendError:
            logger.warning("Session lookup failed, treating request as signed out", exc_info=True)
            user = None
        self.set_user(user)
        return user

    async def refresh(self) -> SessionUser | None:
        return await self.initialize()

    async def sign_out(self) -> bool:
        """Sign out on the server and clear the local user either way.

        Returns False when the auth service rejected or failed the sign-out.
        """
        if not self.token:
            self.set_user(None)
            return True
        try:
            await self._auth.sign_out(self.token)
        except BackendError:
            logger.exception("Sign out failed for session token")
            self.set_user(None)
            return False
        self.set_user(None)
        return True

    def set_user(self, user: SessionUser | None) -> None:
        status = SessionStatus.AUTHENTICATED if user is not None else SessionStatus.ANONYMOUS
        if status is self.status and user == self.user:
            return
        self.status = status
        self.user = user
        for listener in list(self._listeners):
            listener(user)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe_auth()
        self._listeners.clear()

    def _on_auth_event(self, event: AuthEvent, token: str, user: SessionUser | None) -> None:
        if token != self.token:
            return
        self.set_user(user if event is AuthEvent.SIGNED_IN else None)
