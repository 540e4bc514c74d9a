"""
Identity gate - bearer JWT verification and role guard.

Tokens are issued by the institution's login service; the portal only
verifies them. The `sub` claim holds the user id, which must belong to an
existing, active user.
"""

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from leave_portal.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET
from leave_portal.database import get_db
from leave_portal.errors import ForbiddenError, UnauthenticatedError
from leave_portal.models.user import User

security_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, role: str, expires_minutes: int = None) -> str:
    """Issue a signed token for a user (used by seed scripts and tests)."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def authenticate(token: str, db: Session) -> User:
    """Resolve a bearer token to an active user or raise UnauthenticatedError."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthenticatedError("Not authorized, token invalid")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UnauthenticatedError("User not found")
    if not user.is_active:
        raise UnauthenticatedError("User account is inactive")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Not authorized, no token provided")
    return authenticate(credentials.credentials, db)


def require_role(allowed_roles: list):
    """
    Usage:
        @router.get("/admin-only")
        def endpoint(user: User = Depends(require_role(["admin"]))):
    """

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_roles:
            raise ForbiddenError(
                "Access denied. This action requires {} role.".format(" or ".join(allowed_roles)))
        return user

    return role_checker
