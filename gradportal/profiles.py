"""Profile half of the backend client."""
from __future__ import annotations

import logging
from datetime import datetime

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gradportal.core.enums import GraduationStatus, Role
from gradportal.core.exceptions import BackendError, DuplicateRecordError, ProfileNotFoundError
from gradportal.models.profile import Profile

logger = logging.getLogger(__name__)


class ProfileRow(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    student_id: str | None = None
    graduation_status: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class NewProfile(BaseModel):
    id: str
    email: str
    full_name: str
    role: Role = Role.STUDENT
    student_id: str | None = None
    graduation_status: GraduationStatus = GraduationStatus.PENDING

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Full name is required.')
        return normalized

    @field_validator('student_id')
    @classmethod
    def validate_student_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


def create_user_profile(
    user_id: str,
    email: str,
    full_name: str,
    role: str | None = None,
    student_id: str | None = None,
) -> NewProfile:
    """Build the row inserted at account creation; new accounts always start pending."""
    return NewProfile(
        id=user_id,
        email=email,
        full_name=full_name,
        role=role or Role.STUDENT,
        student_id=student_id,
        graduation_status=GraduationStatus.PENDING,
    )


class ProfileTable:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def get_by_id(self, profile_id: str) -> ProfileRow:
        return await run_in_threadpool(self._get_by_id, profile_id)

    async def list_by_role(self, role: Role) -> list[ProfileRow]:
        return await run_in_threadpool(self._list_by_role, role)

    async def update(self, profile_id: str, graduation_status: GraduationStatus) -> None:
        await run_in_threadpool(self._update, profile_id, graduation_status)

    async def insert(self, profile: NewProfile) -> ProfileRow:
        return await run_in_threadpool(self._insert, profile)

    def _get_by_id(self, profile_id: str) -> ProfileRow:
        db = self._session_factory()
        try:
            profile = db.query(Profile).filter(Profile.id == profile_id).first()
        except SQLAlchemyError as exc:
            raise BackendError('Profile service unavailable.') from exc
        finally:
            db.close()

        if profile is None:
            raise ProfileNotFoundError(f'No profile for id {profile_id}.')
        return ProfileRow.model_validate(profile)

    def _list_by_role(self, role: Role) -> list[ProfileRow]:
        db = self._session_factory()
        try:
            profiles = db.query(Profile).filter(
                Profile.role == Role(role).value,
            ).order_by(Profile.student_id.asc().nulls_last()).all()
            return [ProfileRow.model_validate(profile) for profile in profiles]
        except SQLAlchemyError as exc:
            raise BackendError('Profile service unavailable.') from exc
        finally:
            db.close()

    def _update(self, profile_id: str, graduation_status: GraduationStatus) -> None:
        status_value = GraduationStatus(graduation_status).value
        db = self._session_factory()
        try:
            updated = db.query(Profile).filter(Profile.id == profile_id).update(
                {Profile.graduation_status: status_value},
                synchronize_session=False,
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise BackendError('Profile service unavailable.') from exc
        finally:
            db.close()

        if updated == 0:
            raise ProfileNotFoundError(f'No profile for id {profile_id}.')
        logger.info('Set graduation status of %s to %s', profile_id, status_value)

    def _insert(self, new_profile: NewProfile) -> ProfileRow:
        db = self._session_factory()
        try:
            profile = Profile(
                id=new_profile.id,
                email=new_profile.email,
                full_name=new_profile.full_name,
                role=new_profile.role.value,
                student_id=new_profile.student_id,
                graduation_status=new_profile.graduation_status.value,
            )
            db.add(profile)
            db.commit()
            db.refresh(profile)
            logger.info('Created %s profile %s', profile.role, profile.id)
            return ProfileRow.model_validate(profile)
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateRecordError('A profile with this id or student ID already exists.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise BackendError('Profile service unavailable.') from exc
        finally:
            db.close()
