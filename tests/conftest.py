import asyncio
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from gradportal.auth.client import AuthEvent, SessionUser  # noqa: E402
from gradportal.backend_client import create_account, create_backend_client  # noqa: E402
from gradportal.core.enums import GraduationStatus, Role  # noqa: E402
from gradportal.core.exceptions import BackendError, ProfileNotFoundError  # noqa: E402
from gradportal.database import Base  # noqa: E402
from gradportal.models.auth_session import AuthSession  # noqa: E402
from gradportal.models.profile import Profile  # noqa: E402
from gradportal.models.user import User  # noqa: E402
from gradportal.profiles import ProfileRow  # noqa: E402

PASSWORD = 'correct-horse'


@pytest.fixture
def backend():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    tables = [User.__table__, Profile.__table__, AuthSession.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield create_backend_client(session_factory)
    finally:
        Base.metadata.drop_all(bind=engine, tables=list(reversed(tables)))
        engine.dispose()


@pytest.fixture
def make_account(backend):
    def _make_account(email: str, role: str = 'student', student_id: str | None = None, full_name: str = 'Test User'):
        return asyncio.run(
            create_account(
                backend,
                email=email,
                password=PASSWORD,
                full_name=full_name,
                role=role,
                student_id=student_id,
            )
        )

    return _make_account


class FakeAuth:
    """Auth service double: tokens map straight to users."""

    def __init__(self, sessions=None, fail_lookup: bool = False, fail_sign_out: bool = False):
        self.sessions: dict[str, SessionUser] = dict(sessions or {})
        self.fail_lookup = fail_lookup
        self.fail_sign_out = fail_sign_out
        self.listeners = []

    def on_session_change(self, callback):
        self.listeners.append(callback)

        def unsubscribe():
            if callback in self.listeners:
                self.listeners.remove(callback)

        return unsubscribe

    async def get_current_session(self, token):
        if self.fail_lookup:
            raise BackendError('lookup failed')
        return self.sessions.get(token)

    async def sign_out(self, token):
        if self.fail_sign_out:
            raise BackendError('sign out failed')
        self.sessions.pop(token, None)
        for callback in list(self.listeners):
            callback(AuthEvent.SIGNED_OUT, token, None)


class FakeProfiles:
    """In-memory ``profiles`` table with switchable failures."""

    def __init__(self, rows=()):
        self.rows: dict[str, ProfileRow] = {row.id: row for row in rows}
        self.fail_get = False
        self.fail_list = False
        self.fail_update = False
        self.get_calls: list[str] = []
        self.list_calls = 0
        self.update_calls: list[tuple[str, GraduationStatus]] = []
        self.on_update = None
        self.hold: asyncio.Event | None = None

    async def get_by_id(self, profile_id):
        self.get_calls.append(profile_id)
        if self.fail_get:
            raise BackendError('fetch failed')
        if profile_id not in self.rows:
            raise ProfileNotFoundError(profile_id)
        return self.rows[profile_id]

    async def list_by_role(self, role):
        self.list_calls += 1
        if self.fail_list:
            raise BackendError('fetch failed')
        rows = [row for row in self.rows.values() if row.role == Role(role).value]
        return sorted(rows, key=lambda row: (row.student_id is None, row.student_id or ''))

    async def update(self, profile_id, graduation_status):
        self.update_calls.append((profile_id, graduation_status))
        if self.on_update is not None:
            self.on_update()
        if self.hold is not None:
            await self.hold.wait()
        if self.fail_update:
            raise BackendError('network error')
        row = self.rows[profile_id]
        self.rows[profile_id] = row.model_copy(update={'graduation_status': graduation_status.value})


def profile_row(profile_id: str, role: str = 'student', student_id: str | None = None, graduation_status=None):
    return ProfileRow(
        id=profile_id,
        email=f'{profile_id}@example.edu',
        full_name=f'User {profile_id}',
        role=role,
        student_id=student_id,
        graduation_status=graduation_status,
    )
