"""Registration, login/logout and the current-user endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.api.deps import bearer_scheme, require_user
from storefront.core.errors import BadRequestError, UnauthorizedError
from storefront.core.security import create_session, hash_password, revoke_session, verify_password
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.schemas.account import LoginIn, RegisterIn, TokenOut, UserOut
from storefront.schemas.common import Message
from storefront.services import notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _find_by_email(db: Session, email: str):
    return db.scalar(select(User).where(func.lower(User.email) == email.lower()))


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, summary="Create a customer account")
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    """Create a customer account. Duplicate emails are rejected."""
    if _find_by_email(db, payload.email) is not None:
        raise BadRequestError("Email already registered")

    user = User(name=payload.name, email=payload.email.lower(), password_hash=hash_password(payload.password), role="customer")
    db.add(user)
    notifications.new_customer(db, user.email)
    db.commit()
    logger.info("Registered user %s", user.id)
    return user


@router.post("/login", response_model=TokenOut, summary="Exchange credentials for a session token")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = _find_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")

    session = create_session(db, user)
    db.commit()
    return TokenOut(token=session.session_token, expires=session.expires, user=UserOut.model_validate(user))


@router.post("/logout", response_model=Message, summary="Revoke the current session token")
def logout(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    _user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    revoke_session(db, credentials.credentials)
    return Message(message="Signed out")


@router.get("/me", response_model=UserOut, summary="Current user")
def me(user: User = Depends(require_user)):
    return user
