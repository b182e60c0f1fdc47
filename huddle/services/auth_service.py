"""Identity gateway: resolve bearer tokens to stored users."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..clients.identity import IdentityLookupError, introspect_token
from ..config import get_settings
from ..database import get_session
from ..errors import AuthenticationError
from ..models import User
from ..security.secrets import MissingSecretError, require_secret

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def create_access_token(subject: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT holding the provided ``subject``."""

    settings = get_settings()
    expire_delta = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    now = datetime.now(timezone.utc)
    payload = {"sub": str(subject), "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Decode and validate a JWT, returning the embedded subject UUID."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[get_settings().jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationError("Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token payload")
    try:
        return UUID(str(subject))
    except ValueError as exc:
        raise AuthenticationError("Invalid token payload") from exc


async def resolve_user_id(token: str) -> UUID:
    """Map a token to a user id, preferring remote introspection when configured."""

    if get_settings().identity_introspection_url:
        try:
            return await introspect_token(token)
        except IdentityLookupError as exc:
            raise AuthenticationError("Invalid token") from exc
    return decode_access_token(token)


async def authenticate_token(db: Session, token: str | None) -> User:
    """Return the stored user behind ``token`` or raise :class:`AuthenticationError`."""

    if not token:
        raise AuthenticationError("Missing bearer token")
    user_id = await resolve_user_id(token)
    user = db.get(User, user_id)
    if user is None:
        logger.info("Token subject %s has no matching user", user_id)
        raise AuthenticationError("Invalid token")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> User:
    """Resolve the authenticated user from the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return await authenticate_token(db, credentials.credentials)


__all__ = [
    "create_access_token",
    "decode_access_token",
    "resolve_user_id",
    "authenticate_token",
    "get_current_user",
]
