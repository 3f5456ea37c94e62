"""Admin authentication for the Lifelog API"""

from __future__ import annotations

import os
import secrets

from fastapi import Header, HTTPException, status

from lifelog.observability.logging import get_logger

logger = get_logger(__name__)


class APIKeyAuth:
    """
    Bearer API key authentication for admin endpoints.

    The key is read from LIFELOG_ADMIN_API_KEY. Without a key, admin
    endpoints are open in development and closed in production.
    """

    def __init__(self):
        self.api_key = os.getenv("LIFELOG_ADMIN_API_KEY")
        if not self.api_key:
            logger.warning("LIFELOG_ADMIN_API_KEY not set - admin endpoints are unprotected!")

    def verify_api_key(self, authorization: str | None = Header(None)) -> bool:
        """
        Verify API key from Authorization header.

        Expected format: "Bearer {api_key}"
        """
        if not self.api_key:
            if os.getenv("LIFELOG_ENV", "development") == "production":
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Admin API key not configured",
                )
            return True

        if not authorization:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing authorization header",
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            scheme, token = authorization.split()
            if scheme.lower() != "bearer":
                raise ValueError("Invalid authentication scheme")
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization header format. Expected: Bearer {api_key}",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        # Timing-safe comparison
        if not secrets.compare_digest(token, self.api_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid API key",
            )

        return True


# Global auth instance
auth = APIKeyAuth()


def require_admin_auth(authorization: str | None = Header(None)) -> bool:
    """
    Dependency for endpoints that require admin authentication.

    Usage:
        @router.put("/api/admin/event-config")
        async def update_config(authenticated: bool = Depends(require_admin_auth)):
            ...
    """
    return auth.verify_api_key(authorization)
