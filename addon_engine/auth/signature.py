"""Request signature verification.

Clients sign every request with a JWT issued by the platform. The token's
``user`` claim (or its ``sub``) becomes the request's user identity.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from ..core.config import settings
from ..core.exceptions import AuthError

logger = logging.getLogger(__name__)


def validate_signature(sig: str | None) -> dict[str, Any]:
    """Verify ``sig`` and return the user it identifies.

    Raises:
        AuthError: signature missing, malformed, expired or not trusted
    """
    if not sig:
        raise AuthError("Missing signature")
    if not settings.SIGNATURE_PUBLIC_KEY:
        raise AuthError("Signature verification is not configured")

    try:
        claims = jwt.decode(
            sig,
            settings.SIGNATURE_PUBLIC_KEY,
            algorithms=settings.SIGNATURE_ALGORITHMS,
            leeway=settings.SIGNATURE_LEEWAY_S,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Signature expired") from e
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected signature: %s", e)
        raise AuthError(f"Invalid signature: {e}") from e

    user = claims.get("user")
    if isinstance(user, dict):
        return {"id": claims["sub"], **user}
    return {"id": claims["sub"]}
