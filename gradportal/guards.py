from __future__ import annotations

import logging
from dataclasses import dataclass

from gradportal.auth.client import SessionUser
from gradportal.core.enums import is_admin
from gradportal.core.exceptions import BackendError
from gradportal.profiles import ProfileTable
from gradportal.session import SessionContext

logger = logging.getLogger(__name__)

LOGIN_PATH = '/'
STUDENT_DASHBOARD_PATH = '/dashboard'
ADMIN_DASHBOARD_PATH = '/admin'


@dataclass(frozen=True)
class GuardResult:
    redirect_to: str | None = None

    @property
    def authorized(self) -> bool:
        return self.redirect_to is None


def require_user(context: SessionContext) -> GuardResult:
    if context.user is None:
        return GuardResult(redirect_to=LOGIN_PATH)
    return GuardResult()


async def fetch_role(user: SessionUser, profiles: ProfileTable) -> str | None:
    try:
        profile = await profiles.get_by_id(user.id)
    except BackendError:
        logger.warning('Role lookup failed for %s', user.id, exc_info=True)
        return None
    return profile.role


async def require_admin(context: SessionContext, profiles: ProfileTable) -> GuardResult:
    result = require_user(context)
    if not result.authorized:
        return result

    if not is_admin(await fetch_role(context.user, profiles)):
        return GuardResult(redirect_to=STUDENT_DASHBOARD_PATH)
    return GuardResult()


async def landing_path(user: SessionUser, profiles: ProfileTable) -> str:
    if is_admin(await fetch_role(user, profiles)):
        return ADMIN_DASHBOARD_PATH
    return STUDENT_DASHBOARD_PATH
