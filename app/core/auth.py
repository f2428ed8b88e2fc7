# app/core/auth.py
import logging
import uuid
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import Forbidden, Unauthorized
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

settings = get_settings()
user_repo = UserRepository()

# auto_error=False: a missing Authorization header means "guest", which
# checkout accepts. Routes that need a user depend on require_auth.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry of a bearer JWT (HS256 by default).
    The audience claim is not checked.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise Unauthorized("Invalid or expired token")


def identity_from_claims(claims: dict[str, Any]) -> tuple[uuid.UUID, str]:
    """
    Extract (user id, email) from verified claims.

    Raises:
        Unauthorized: `sub` or `email` missing, or `sub` is not a UUID.
    """
    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise Unauthorized("Token missing sub/email")
    try:
        return uuid.UUID(str(sub)), email
    except ValueError:
        raise Unauthorized("Invalid sub in token")


def _provision_user(session: Session, user_id: uuid.UUID, email: str) -> User:
    """
    First request from a new account: mirror it as a customer. Admins are
    promoted by hand, never through a token.
    """
    user = User(id=user_id, email=email, name=email.split("@", 1)[0], role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Provisioned user %s (%s)", user_id, email)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    The caller's User, or None for guests.

    A presented token must be valid; a bad token is a 401, not a guest.
    """
    if credentials is None:
        return None

    user_id, email = identity_from_claims(decode_access_token(credentials.credentials))
    user = user_repo.get_by_id(session, user_id)
    if user is None:
        user = _provision_user(session, user_id, email)
    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """401 for guests."""
    if user is None:
        raise Unauthorized()
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """403 for signed-in non-admins."""
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user
