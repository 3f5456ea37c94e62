"""
Caller identity for the Lifelog API.

The authenticating gateway in front of this service verifies the session and
forwards the user id in the X-User-ID header. This module only turns that
header into an AuthenticatedUser; it never trusts a user id from the body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from lifelog.observability.logging import get_logger

logger = get_logger(__name__)

USER_ID_HEADER = "X-User-ID"

# Firebase uids and similar opaque ids
_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-:.@]{1,128}$")


@dataclass
class AuthenticatedUser:
    """The user on whose behalf the request is made."""

    id: str

    def __str__(self) -> str:
        return f"User({self.id})"


def _extract_user_id(raw: str | None) -> str:
    if not raw or not raw.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {USER_ID_HEADER} header",
        )

    user_id = raw.strip()
    if not _USER_ID_PATTERN.match(user_id):
        logger.warning("Rejected malformed user id header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid {USER_ID_HEADER} header",
        )
    return user_id


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    FastAPI dependency to get the current user.

    Usage:
        @router.get("/endpoint")
        async def endpoint(user: AuthenticatedUser = Depends(get_current_user)):
            # user.id is the owner id used for every ownership check
            ...
    """
    return AuthenticatedUser(id=_extract_user_id(request.headers.get(USER_ID_HEADER)))
