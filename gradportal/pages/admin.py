from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from gradportal.core.enums import GraduationStatus, Role
from gradportal.core.exceptions import BackendError
from gradportal.guards import ADMIN_DASHBOARD_PATH, GuardResult, require_admin
from gradportal.pages.base import ActionState, Page
from gradportal.profiles import ProfileRow, ProfileTable
from gradportal.session import SessionContext

logger = logging.getLogger(__name__)

ROSTER_LOAD_ERROR = 'Unable to load students. Please try again later.'
TOGGLE_ERROR = 'Unable to update graduation status. Please try again.'
UNKNOWN_STUDENT_ERROR = 'That student is not on this roster. Reload the page and try again.'

BADGE_CLASSES = {
    GraduationStatus.CONFIRMED: 'badge-positive',
    GraduationStatus.PENDING: 'badge-warning',
}
ACTION_LABELS = {
    GraduationStatus.CONFIRMED: 'Set Pending',
    GraduationStatus.PENDING: 'Confirm',
}


@dataclass
class RosterRow:
    profile: ProfileRow
    graduation_status: GraduationStatus
    toggle_state: ActionState = ActionState.IDLE

    @property
    def id(self) -> str:
        return self.profile.id

    @property
    def badge_class(self) -> str:
        return BADGE_CLASSES[self.graduation_status]

    @property
    def action_label(self) -> str:
        return ACTION_LABELS[self.graduation_status]


class AdminDashboard(Page):
    path = ADMIN_DASHBOARD_PATH

    def __init__(self, context: SessionContext, profiles: ProfileTable):
        super().__init__(context, profiles)
        self.students: list[RosterRow] = []
        self.load_state = ActionState.IDLE
        self._toggle_tasks: dict[str, asyncio.Task] = {}

    async def check_access(self) -> GuardResult:
        return await require_admin(self.context, self.profiles)

    async def load(self) -> None:
        self.load_state = ActionState.LOADING
        try:
            profiles = await self.profiles.list_by_role(Role.STUDENT)
        except BackendError:
            logger.exception('Error fetching students')
            self.load_state = ActionState.ERROR
            self.students = []
            self.error = ROSTER_LOAD_ERROR
            return

        self.students = [
            RosterRow(profile=profile, graduation_status=GraduationStatus.from_value(profile.graduation_status))
            for profile in profiles
        ]
        self.load_state = ActionState.SUCCESS
        self.error = None

    def find_row(self, profile_id: str) -> RosterRow | None:
        for row in self.students:
            if row.id == profile_id:
                return row
        return None

    async def toggle_status(self, profile_id: str) -> None:
        """Flip one row's status; a repeat submit for that row waits on its update in flight."""
        if not self.renderable:
            return

        task = self._toggle_tasks.get(profile_id)
        if task is None:
            row = self.find_row(profile_id)
            if row is None:
                self.error = UNKNOWN_STUDENT_ERROR
                return
            task = self._toggle_tasks[profile_id] = asyncio.ensure_future(self._toggle(row))
        await task

    async def _toggle(self, row: RosterRow) -> None:
        target = row.graduation_status.toggled()
        row.toggle_state = ActionState.LOADING
        self.error = None
        try:
            await self.profiles.update(row.id, target)
        except BackendError:
            logger.exception('Error updating graduation status for %s', row.id)
            row.toggle_state = ActionState.ERROR
            self.error = TOGGLE_ERROR
            return
        finally:
            self._toggle_tasks.pop(row.id, None)

        row.graduation_status = target
        row.toggle_state = ActionState.SUCCESS
