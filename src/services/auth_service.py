# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Authentication service: users, passwords and login sessions."""

import logging
import uuid
from datetime import timedelta

from sqlalchemy.orm import Session

from src.config import settings
from src.events import AppEvent, event_bus
from src.models import User
from src.models.base import utcnow
from src.models.session import Session as SessionModel
from src.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for user administration errors."""


class EmailTakenError(UserServiceError):
    """Another user already has this email address."""


def create_user(
    db: Session,
    email: str,
    password: str,
    name: str | None = None,
    company_id: uuid.UUID | None = None,
    role_id: uuid.UUID | None = None,
) -> User:
    """Create an active user inside a company."""
    if get_user_by_email(db, email):
        raise EmailTakenError("Email already in use")

    user = User(
        email=email.lower(),
        name=name,
        hashed_password=get_password_hash(password),
        is_active=True,
        company_id=company_id,
        role_id=role_id,
        custom_permissions=[],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.id}")

    event_bus.publish_sync(
        AppEvent.USER_CREATED,
        {"user_id": str(user.id), "company_id": str(company_id) if company_id else None},
    )
    return user


def list_users(db: Session, company_id: uuid.UUID | None = None) -> list[User]:
    """List users, optionally limited to one company."""
    query = db.query(User)
    if company_id is not None:
        query = query.filter(User.company_id == company_id)
    return query.order_by(User.email).all()


def set_password(db: Session, user: User, password: str) -> int:
    """Replace a user's password and end their sessions.

    Returns the number of sessions ended.
    """
    user.hashed_password = get_password_hash(password)
    revoked = _revoke_sessions(db, user.id)
    db.commit()
    logger.info(f"Password reset for user {user.id}, {revoked} sessions ended")
    return revoked


def deactivate_user(db: Session, user: User) -> int:
    """Deactivate a user and end their sessions.

    The user row is kept so the activity log stays attributable.
    """
    user.is_active = False
    revoked = _revoke_sessions(db, user.id)
    db.commit()
    logger.info(f"Deactivated user {user.id}, {revoked} sessions ended")
    return revoked


def _revoke_sessions(db: Session, user_id: uuid.UUID) -> int:
    return (
        db.query(SessionModel)
        .filter(SessionModel.user_id == user_id)
        .delete(synchronize_session="fetch")
    )


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Authenticate a user by email and password."""
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user


def create_session(db: Session, user_id: uuid.UUID, user_agent: str | None = None) -> str:
    """Create a new session for a user."""
    token = str(uuid.uuid4())
    expires_at = utcnow() + timedelta(days=settings.SESSION_EXPIRY_DAYS)

    session = SessionModel(
        user_id=user_id,
        token=token,
        user_agent=user_agent,
        expires_at=expires_at,
    )
    db.add(session)
    db.commit()
    return token


def get_session(db: Session, token: str) -> SessionModel | None:
    """Get a valid session by token."""
    session = db.query(SessionModel).filter(SessionModel.token == token).first()
    if not session:
        return None
    if session.expires_at < utcnow():
        db.delete(session)
        db.commit()
        return None
    return session


def delete_session(db: Session, token: str) -> bool:
    """Delete a session by token."""
    session = db.query(SessionModel).filter(SessionModel.token == token).first()
    if session:
        db.delete(session)
        db.commit()
        return True
    return False


def get_user_by_id(db: Session, user_id: uuid.UUID) -> User | None:
    """Get a user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == email.lower()).first()


def cleanup_expired_sessions(db: Session) -> int:
    """Delete all expired sessions. Returns count of deleted sessions."""
    count = (
        db.query(SessionModel)
        .filter(SessionModel.expires_at < utcnow())
        .delete()
    )
    db.commit()
    return count
