# app/core/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

import jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError

from .exceptions import AuthError, AuthFailure, TokenExpired, TokenInvalid

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Identity carried inside a session token
class IdentityClaims(BaseModel):
    id: int
    email: str
    name: str
    firstname: str


class TokenClaims(IdentityClaims):
    iat: int
    exp: int


class TokenService:
    """
    Issues and validates signed, self-contained session tokens.

    Validation is stateless: there is no revocation list, so a token stays
    valid until it expires even if its user has been deleted since. Changing
    the secret invalidates every outstanding token.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        if ttl <= timedelta(0):
            raise ValueError("Token lifetime must be positive")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    def issue(self, identity: Union[IdentityClaims, Mapping[str, Any]]) -> str:
        if not isinstance(identity, IdentityClaims):
            identity = IdentityClaims.model_validate(identity)

        issued_at = self._clock()
        payload: Dict[str, Any] = identity.model_dump()
        payload["iat"] = int(issued_at.timestamp())
        payload["exp"] = int((issued_at + self.ttl).timestamp())

        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def validate(self, token: str) -> TokenClaims:
        try:
            # Expiry is checked below against our own clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected token: {type(e).__name__}")
            raise TokenInvalid() from e

        try:
            claims = TokenClaims.model_validate(payload)
        except PydanticValidationError as e:
            logger.info("Rejected token: malformed claims")
            raise TokenInvalid() from e

        if int(self._clock().timestamp()) >= claims.exp:
            raise TokenExpired()

        return claims


def authenticate_bearer(token: Optional[str], tokens: TokenService) -> TokenClaims:
    """
    Resolve the caller's identity from a bearer token.

    Unauthenticated -> Validating -> Authenticated(claims) | Rejected(reason).
    The user row is never re-read; claims are trusted as of issuance.
    """
    if not token:
        raise AuthError(AuthFailure.NO_TOKEN)

    try:
        return tokens.validate(token)
    except TokenExpired:
        raise AuthError(AuthFailure.EXPIRED)
    except TokenInvalid:
        raise AuthError(AuthFailure.INVALID)


__all__ = [
    "IdentityClaims",
    "TokenClaims",
    "TokenService",
    "authenticate_bearer",
    "utcnow",
]
