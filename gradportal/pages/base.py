from __future__ import annotations

from enum import Enum

from gradportal.auth.client import SessionUser
from gradportal.guards import LOGIN_PATH, GuardResult, require_user
from gradportal.profiles import ProfileTable
from gradportal.session import SessionContext


class ActionState(str, Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    SUCCESS = 'success'
    ERROR = 'error'


class Page:
    """Local state of one visit to a protected view.

    Nothing is rendered until :meth:`mount` has run the guard. A session
    change unmounts the page; the next request mounts it again.
    """

    path: str = ''

    def __init__(self, context: SessionContext, profiles: ProfileTable):
        self.context = context
        self.profiles = profiles
        self.mounted = False
        self.authorized = False
        self.redirect_to: str | None = None
        self.error: str | None = None
        self._unsubscribe = context.subscribe(self._on_session_change)

    @property
    def user(self) -> SessionUser | None:
        return self.context.user

    @property
    def renderable(self) -> bool:
        return self.mounted and self.authorized

    async def mount(self) -> None:
        self.mounted = False
        self.authorized = False
        self.redirect_to = None
        if not self.context.resolved:
            await self.context.initialize()

        result = await self.check_access()
        self.mounted = True
        if not result.authorized:
            self.redirect_to = result.redirect_to
            return

        self.authorized = True
        await self.load()

    async def check_access(self) -> GuardResult:
        return require_user(self.context)

    async def load(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self._unsubscribe()
        self.context.close()

    def _on_session_change(self, user: SessionUser | None) -> None:
        self.mounted = False
        self.authorized = False
        self.redirect_to = LOGIN_PATH if user is None else None
