"""
Auth dependencies for protected FastAPI routes.

The access token travels in a custom header (`x-auth-token` by default),
not in `Authorization: Bearer ...`. Frontends already send it that way.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from . import security

logger = logging.getLogger(__name__)


def _extract_token(request: Request) -> str:
    raw = (request.headers.get(security.auth_token_header()) or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )
    return raw


async def get_current_claims(request: Request) -> dict:
    """
    Verify the token and attach the decoded claim to `request.state.user`.

    Only the signature and expiry are checked here; routes that need the row
    look it up by `claims["id"]`.
    """
    token = _extract_token(request)
    try:
        claims = security.decode_access_token(token)
    except security.AuthSecurityError as exc:
        logger.info("token_rejected path=%s reason=%s", request.url.path, exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    request.state.user = claims
    return claims
