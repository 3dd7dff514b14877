"""
Bearer token verification for the hosted identity provider.

Owned records are always attributed to the user in the verified token,
never to a user id supplied in a request body.
"""

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from podcast_translator.config import get_settings
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationError(Exception):
    """Raised when a request carries no valid bearer token."""
    pass


@dataclass(frozen=True)
class CurrentUser:
    """Identity extracted from a verified access token."""
    user_id: str
    email: Optional[str] = None


def decode_access_token(token: str) -> CurrentUser:
    """
    Verify an access token and return the caller's identity.

    Args:
        token: Encoded JWT from the Authorization header

    Returns:
        CurrentUser built from the ``sub`` and ``email`` claims

    Raises:
        AuthenticationError: If the token is invalid, expired or has no subject
    """
    settings = get_settings()
    if not settings.auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET is not configured")
        raise AuthenticationError("Authentication is not configured")

    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Access token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected access token", error=str(e))
        raise AuthenticationError(f"Invalid access token: {str(e)}")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Access token has no subject")

    return CurrentUser(user_id=str(subject), email=payload.get("email"))


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """FastAPI dependency resolving the authenticated caller."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return decode_access_token(credentials.credentials)
