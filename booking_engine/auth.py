"""Bearer-token guard for the ``/api`` routes.

The CRM front end sends ``Authorization: Bearer <API_KEY>`` on every
availability and booking call.  With no ``API_KEY`` configured the routes
are reachable only when ``DEBUG`` is on, so a half-configured deployment
never exposes appointments.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from booking_engine.config import settings

log = logging.getLogger("booking_engine.auth")

_bearer = HTTPBearer(auto_error=False, description="Booking API key")


def _presented_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return ""
    return credentials.credentials


async def require_api_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> None:
    """Reject the request unless it carries the configured API key."""
    expected = settings.api_key
    if not expected:
        if not settings.debug:
            log.error("Booking API called but API_KEY is not configured")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Booking API is disabled until API_KEY is configured.",
            )
        return

    token = _presented_token(credentials)
    if token and secrets.compare_digest(token.encode(), expected.encode()):
        return

    log.warning("Booking API request rejected (%s token)", "bad" if token else "no")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing or invalid bearer token.",
        headers={"WWW-Authenticate": "Bearer"},
    )
