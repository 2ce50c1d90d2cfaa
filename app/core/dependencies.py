# app/core/dependencies.py
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import TokenClaims, decode_access_token
from app.exceptions.base import AuthenticationError
from app.persistence.base import PersistenceAdapter
from app.storage.webdav import WebDAVStorage

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_persistence(request: Request) -> PersistenceAdapter:
    """Persistence adapter built in the application lifespan."""
    return request.app.state.persistence


def get_object_storage(request: Request) -> WebDAVStorage:
    """WebDAV client built in the application lifespan."""
    return request.app.state.object_storage


async def get_token_claims(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenClaims:
    """Validate the bearer token and expose its claims.

    Returns:
        TokenClaims: Decoded token claims, also stored on ``request.state.user``

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided", error_code="NO_TOKEN")

    try:
        claims = decode_access_token(credentials.credentials)
    except AuthenticationError:
        logger.info("Rejected bearer token on %s", request.url.path)
        raise

    request.state.user = claims
    return claims
