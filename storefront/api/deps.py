"""
Access-level dependencies: public (optional user), protected (any signed-in user) and admin.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.core.errors import ForbiddenError, UnauthorizedError
from storefront.core.security import resolve_session_user
from storefront.db.models import User
from storefront.db.session import get_db

bearer_scheme = HTTPBearer(auto_error=False)


# PUBLIC_INTERFACE
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the bearer token to a user, or None for anonymous callers."""
    if credentials is None:
        return None
    return resolve_session_user(db, credentials.credentials)


# PUBLIC_INTERFACE
def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Protected routes: any signed-in user."""
    if user is None:
        raise UnauthorizedError("You must be signed in")
    return user


# PUBLIC_INTERFACE
def require_admin(user: User = Depends(require_user)) -> User:
    """Admin routes."""
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user
