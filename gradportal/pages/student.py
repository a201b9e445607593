from __future__ import annotations

import asyncio
import logging

from gradportal.core.enums import GraduationStatus
from gradportal.core.exceptions import BackendError
from gradportal.guards import STUDENT_DASHBOARD_PATH
from gradportal.pages.base import ActionState, Page
from gradportal.profiles import ProfileRow, ProfileTable
from gradportal.session import SessionContext

logger = logging.getLogger(__name__)

PROFILE_LOAD_ERROR = 'Unable to load your profile. Please try again later.'
CONFIRM_ERROR = 'Unable to confirm graduation attendance. Please try again.'
CONFIRM_LABEL = 'Confirm Graduation Attendance'
CONFIRM_BUSY_LABEL = 'Confirming...'


class StudentDashboard(Page):
    path = STUDENT_DASHBOARD_PATH

    def __init__(self, context: SessionContext, profiles: ProfileTable):
        super().__init__(context, profiles)
        self.profile: ProfileRow | None = None
        self.graduation_status = GraduationStatus.PENDING
        self.load_state = ActionState.IDLE
        self.confirm_state = ActionState.IDLE
        self._confirm_task: asyncio.Task | None = None

    async def load(self) -> None:
        self.load_state = ActionState.LOADING
        try:
            profile = await self.profiles.get_by_id(self.user.id)
        except BackendError:
            logger.exception('Error fetching profile for %s', self.user.id)
            self.load_state = ActionState.ERROR
            self.error = PROFILE_LOAD_ERROR
            return

        self.profile = profile
        self.graduation_status = GraduationStatus.from_value(profile.graduation_status)
        self.load_state = ActionState.SUCCESS
        self.error = None

    @property
    def show_confirm(self) -> bool:
        return self.profile is not None and self.graduation_status is GraduationStatus.PENDING

    @property
    def can_confirm(self) -> bool:
        return self.renderable and self.show_confirm and self.confirm_state is not ActionState.LOADING

    @property
    def confirm_label(self) -> str:
        if self.confirm_state is ActionState.LOADING:
            return CONFIRM_BUSY_LABEL
        return CONFIRM_LABEL

    async def confirm_attendance(self) -> None:
        """Confirm attendance; a repeat submit waits on the update already in flight."""
        task = self._confirm_task
        if task is None:
            if not self.can_confirm:
                return
            task = self._confirm_task = asyncio.ensure_future(self._confirm())
        await task

    async def _confirm(self) -> None:
        self.confirm_state = ActionState.LOADING
        self.error = None
        try:
            await self.profiles.update(self.user.id, GraduationStatus.CONFIRMED)
        except BackendError:
            logger.exception('Error confirming attendance for %s', self.user.id)
            self.confirm_state = ActionState.ERROR
            self.error = CONFIRM_ERROR
            return
        finally:
            self._confirm_task = None

        self.graduation_status = GraduationStatus.CONFIRMED
        self.confirm_state = ActionState.SUCCESS
