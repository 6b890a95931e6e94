"""
Password hashing and session tokens.

Passwords are hashed with bcrypt. A successful login stores a random opaque token in
the `sessions` table; clients send it back as `Authorization: Bearer <token>`.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from sqlalchemy import delete, select
from sqlalchemy.orm import Session as DbSession

from storefront.core.config import get_settings
from storefront.db.base import utc_now
from storefront.db.models import Session, User


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


# PUBLIC_INTERFACE
def create_session(db: DbSession, user: User) -> Session:
    """Issue a new session token for `user` (caller commits)."""
    session = Session(
        session_token=secrets.token_urlsafe(32),
        user_id=user.id,
        expires=utc_now() + timedelta(days=get_settings().session_ttl_days),
    )
    db.add(session)
    return session


# PUBLIC_INTERFACE
def resolve_session_user(db: DbSession, token: str) -> Optional[User]:
    """Return the user owning a live session token, or None."""
    session = db.scalar(select(Session).where(Session.session_token == token))
    if session is None:
        return None
    if session.expires < utc_now():
        db.delete(session)
        db.commit()
        return None
    return db.get(User, session.user_id)


def revoke_session(db: DbSession, token: str) -> None:
    db.execute(delete(Session).where(Session.session_token == token))
    db.commit()
