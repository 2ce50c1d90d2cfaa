"""Security related functions: password hashing and access tokens."""

from datetime import UTC, datetime, timedelta

import jwt
from jwt import InvalidTokenError
from passlib.context import CryptContext
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.exceptions.base import AuthenticationError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


class TokenClaims(BaseModel):
    """Claims carried by an access token."""

    id: int
    username: str
    iat: int
    exp: int


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash; malformed hashes never match."""
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def create_access_token(user_id: int, username: str) -> str:
    """
    Issue a signed token for a user.

    :param user_id: Identifier placed in the ``id`` claim.
    :param username: Username placed in the ``username`` claim.
    :return: Encoded JWT, valid for ``access_token_expire_hours``.
    """
    issued_at = datetime.now(UTC)
    payload = {
        "id": user_id,
        "username": username,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.access_token_expire_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify a token's signature and expiry and return its claims.

    :raises AuthenticationError: If the token is malformed, forged, expired, or
        lacks the expected claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
        return TokenClaims.model_validate(payload)
    except (InvalidTokenError, PydanticValidationError) as e:
        raise AuthenticationError("Invalid token") from e
