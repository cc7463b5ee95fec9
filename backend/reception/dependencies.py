# backend/reception/dependencies.py
"""
Shared FastAPI dependencies.

Role management lives outside this service: the upstream admin panel holds
the shared ADMIN_TOKEN and sends it in X-Admin-Token.
"""

import hmac
import logging

from fastapi import Header, HTTPException, Request, status

from .config import settings

logger = logging.getLogger(__name__)


def require_admin(
    request: Request,
    x_admin_token: str | None = Header(None),
) -> None:
    """Reject the request unless it carries the configured admin token."""
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Administrative access is not configured",
        )

    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.admin_token):
        client_host = request.client.host if request.client else None
        logger.warning(f"Rejected admin request to {request.url.path} from {client_host}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
