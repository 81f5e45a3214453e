"""Identity of the calling user, read from bearer tokens issued by the identity provider.

Tokens are never issued here. We verify the signature with the shared secret
and read the subject claim as the user id.
"""

import logging

import jwt
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class NotAuthenticated(Exception):
    """Raised when an operation that writes data has no authenticated user."""


def decode_user_id(token: str) -> str | None:
    """Return the user id carried by a valid token, or None."""
    if not settings.auth_jwt_secret:
        logger.warning("CHAT_AUTH_JWT_SECRET is not set; rejecting all tokens")
        return None
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=settings.auth_jwt_algorithms,
            audience=settings.auth_jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected invalid token: {e}")
        return None

    user_id = payload.get("sub")
    return str(user_id) if user_id else None


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str | None:
    """Optional identity. Read endpoints use this and return nothing for anonymous callers."""
    if credentials is None:
        return None
    return decode_user_id(credentials.credentials)


async def require_user_id(user_id: str | None = Depends(get_current_user_id)) -> str:
    """Mandatory identity for endpoints that write."""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
