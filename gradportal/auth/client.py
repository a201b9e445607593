"""Authentication half of the backend client.

Accounts and issued sessions live in the database; tokens are JWTs whose
``sid`` claim points at an ``auth_sessions`` row so a sign-out revokes the
token everywhere, not only in the browser that issued it.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

import jwt
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from gradportal.auth import jwt_handler
from gradportal.core.exceptions import AuthenticationError, BackendError, DuplicateRecordError
from gradportal.models.auth_session import AuthSession
from gradportal.models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthEvent(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    user: SessionUser
    expires_at: datetime


SessionChangeCallback = Callable[[AuthEvent, str, "SessionUser | None"], None]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AuthClient:
    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._listeners: list[SessionChangeCallback] = []

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        """Register ``callback(event, token, user)``; returns the unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: AuthEvent, token: str, user: SessionUser | None) -> None:
        for callback in list(self._listeners):
            try:
                callback(event, token, user)
            except Exception:
                logger.exception("Session change listener failed for %s", event.value)

    async def sign_up(self, email: str, password: str) -> SessionUser:
        return await run_in_threadpool(self._sign_up, email, password)

    async def sign_in(self, email: str, password: str) -> IssuedSession:
        issued = await run_in_threadpool(self._sign_in, email, password)
        self._emit(AuthEvent.SIGNED_IN, issued.access_token, issued.user)
        return issued

    async def get_current_session(self, token: str | None) -> SessionUser | None:
        if not token:
            return None
        return await run_in_threadpool(self._get_current_session, token)

    async def sign_out(self, token: str) -> None:
        await run_in_threadpool(self._sign_out, token)
        self._emit(AuthEvent.SIGNED_OUT, token, None)

    def _sign_up(self, email: str, password: str) -> SessionUser:
        normalized_email = normalize_email(email)
        if not normalized_email or "@" not in normalized_email:
            raise AuthenticationError("A valid email address is required.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthenticationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

        db = self._session_factory()
        try:
            user = User(email=normalized_email, hashed_password=generate_password_hash(password))
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info("Created account %s", user.id)
            return SessionUser(id=user.id, email=user.email)
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateRecordError("An account with this email already exists.") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise BackendError("Account service unavailable.") from exc
        finally:
            db.close()

    def _sign_in(self, email: str, password: str) -> IssuedSession:
        normalized_email = normalize_email(email)
        db = self._session_factory()
        try:
            user = db.query(User).filter(User.email == normalized_email).first()
            if user is None or not check_password_hash(user.hashed_password, password or ""):
                raise AuthenticationError("Invalid email or password.")

            session_id = uuid.uuid4().hex
            token, expires_at = jwt_handler.create_access_token(
                subject=user.id,
                session_id=session_id,
                email=user.email,
            )
            db.add(
                AuthSession(
                    id=session_id,
                    user_id=user.id,
                    created_at=_utcnow(),
                    expires_at=expires_at.replace(tzinfo=None),
                )
            )
            db.commit()
            logger.info("Signed in account %s", user.id)
            return IssuedSession(
                access_token=token,
                user=SessionUser(id=user.id, email=user.email),
                expires_at=expires_at,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            raise BackendError("Account service unavailable.") from exc
        finally:
            db.close()

    def _get_current_session(self, token: str) -> SessionUser | None:
        try:
            payload = jwt_handler.decode_access_token(token)
        except jwt.PyJWTError:
            return None

        user_id = payload.get("sub")
        session_id = payload.get("sid")
        if not user_id or not session_id:
            return None

        db = self._session_factory()
        try:
            row = (
                db.query(AuthSession, User)
                .join(User, User.id == AuthSession.user_id)
                .filter(
                    AuthSession.id == session_id,
                    AuthSession.user_id == user_id,
                    AuthSession.revoked_at.is_(None),
                )
                .first()
            )
        except SQLAlchemyError as exc:
            raise BackendError("Account service unavailable.") from exc
        finally:
            db.close()

        if row is None:
            return None
        _, user = row
        return SessionUser(id=user.id, email=user.email)

    def _sign_out(self, token: str) -> None:
        try:
            # An expired token may still name a live session row.
            payload = jwt_handler.decode_access_token(token, verify_exp=False)
        except jwt.PyJWTError as exc:
            raise AuthenticationError("Invalid session token.") from exc

        db = self._session_factory()
        try:
            db.query(AuthSession).filter(
                AuthSession.id == payload.get("sid"),
                AuthSession.revoked_at.is_(None),
            ).update({AuthSession.revoked_at: _utcnow()}, synchronize_session=False)
            db.commit()
            logger.info("Signed out account %s", payload.get("sub"))
        except SQLAlchemyError as exc:
            db.rollback()
            raise BackendError("Account service unavailable.") from exc
        finally:
            db.close()

    async def delete_account(self, user_id: str) -> None:
        await run_in_threadpool(self._delete_account, user_id)

    def _delete_account(self, user_id: str) -> None:
        db = self._session_factory()
        try:
            db.query(AuthSession).filter(AuthSession.user_id == user_id).delete(synchronize_session=False)
            db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            db.commit()
            logger.info("Deleted account %s", user_id)
        except SQLAlchemyError as exc:
            db.rollback()
            raise BackendError("Account service unavailable.") from exc
        finally:
            db.close()
