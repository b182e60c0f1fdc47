from __future__ import annotations

import logging
from uuid import UUID

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)


class IdentityLookupError(RuntimeError):
    """Raised when the identity gateway cannot resolve a token."""


async def introspect_token(token: str, *, url: str | None = None, timeout: float | None = None) -> UUID:
    """Resolve ``token`` to a user id through the remote introspection endpoint.

    The endpoint receives ``{"token": ...}`` and must answer with ``{"user_id": ...}``.
    """

    settings = get_settings()
    endpoint = url or settings.identity_introspection_url
    if not endpoint:
        raise IdentityLookupError("Identity introspection is not configured")
    limit = timeout or settings.identity_timeout

    try:
        async with httpx.AsyncClient(timeout=limit) as client:
            response = await client.post(endpoint, json={"token": token})
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        logger.warning("Identity introspection timed out | endpoint=%s timeout=%s", endpoint, limit)
        raise IdentityLookupError("Identity gateway timed out") from exc
    except httpx.HTTPError as exc:
        logger.warning("Identity introspection failed | endpoint=%s error=%s", endpoint, type(exc).__name__)
        raise IdentityLookupError("Identity gateway rejected the token") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise IdentityLookupError("Identity gateway response was not valid JSON") from exc

    user_id = data.get("user_id") if isinstance(data, dict) else None
    if not user_id:
        raise IdentityLookupError("Identity gateway returned no user")
    try:
        return UUID(str(user_id))
    except ValueError as exc:
        raise IdentityLookupError("Identity gateway returned a malformed user id") from exc


__all__ = ["IdentityLookupError", "introspect_token"]
