"""Session token issuance, validation and revocation."""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import logging
import uuid

from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError

from cinema_api.core.config import JwtSettings
from cinema_api.core.errors import (
    BadClaimError,
    ConfigurationError,
    InvalidTokenError,
    MissingClaimError,
    TokenExpiredError,
    TokenRevokedError,
)
from cinema_api.core.revocation import RevocationStore

logger = logging.getLogger(__name__)

REVOKED_MARKER = "revoked"


def revocation_key(jti: str) -> str:
    return f"blacklist_{jti}"


def _require_configured(settings: JwtSettings) -> JwtSettings:
    missing = settings.missing()
    if missing:
        logger.error("JWT configuration is incomplete", extra={"missing": missing})
        raise ConfigurationError(
            "JWT configuration is not properly set: missing " + ", ".join(missing)
        )
    return settings


class TokenIssuer:
    """Signs HS256 session tokens carrying the caller's identity claims."""

    def __init__(self, settings: JwtSettings):
        self.settings = _require_configured(settings)
        self.lifetime = timedelta(minutes=settings.access_token_expire_minutes)

    def issue(self, user, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "role": user.role,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "nbf": now,
            "exp": now + self.lifetime,
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
        }
        token = jwt.encode(claims, self.settings.key, algorithm=self.settings.algorithm)
        logger.info("Token issued", extra={"username": user.username, "jti": claims["jti"]})
        return token


class AuthenticationGate:
    """Validates a presented token and checks it against the revocation store.

    ``authenticate`` returns the decoded claims of an acceptable token and
    raises an ``AuthenticationError`` subclass for anything else. Revocation
    lookups fail closed: if the store cannot be reached the
    ``StoreUnavailableError`` propagates and the request is refused.
    """

    def __init__(self, settings: JwtSettings, store: RevocationStore):
        self.settings = _require_configured(settings)
        self.store = store

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.settings.key,
                algorithms=[self.settings.algorithm],
                audience=self.settings.audience,
                issuer=self.settings.issuer,
                # exp is checked in authenticate so logout can answer a missing exp with 400
                options={
                    "leeway": 0,
                    "require_aud": True,
                    "require_iss": True,
                    "require_iat": True,
                },
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError("Invalid token") from e

    async def authenticate(self, token: str) -> dict[str, Any]:
        claims = self.decode(token)

        jti = claims.get("jti")
        if not isinstance(jti, str) or not jti.strip():
            logger.warning("Token missing jti", extra={"sub": claims.get("sub")})
            raise MissingClaimError("jti")
        if claims.get("exp") is None:
            logger.warning("Token missing claim", extra={"jti": jti, "claim": "exp"})
            raise MissingClaimError("exp")
        try:
            issued_at = int(claims["iat"])
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Invalid token") from e
        if issued_at > datetime.now(timezone.utc).timestamp():
            raise InvalidTokenError("Token issued in the future")

        marker = await self.store.get(revocation_key(jti))
        if marker:
            logger.warning("Token revoked", extra={"jti": jti, "marker": marker})
            raise TokenRevokedError("Token has been revoked")

        logger.debug("Token passed revocation check", extra={"jti": jti})
        return claims


async def revoke_token(
    claims: dict[str, Any],
    store: RevocationStore,
    now: Optional[datetime] = None,
) -> Optional[timedelta]:
    """Blacklist the token described by ``claims`` until its own expiry.

    Returns the TTL that was written, or None when the token had already
    expired and there was nothing to blacklist.
    """
    jti = claims.get("jti")
    if not isinstance(jti, str) or not jti:
        logger.warning("Logout attempt with a token missing jti")
        raise BadClaimError("Token ID (JTI) not found in token.")

    exp = claims.get("exp")
    try:
        if exp is None or isinstance(exp, bool):
            raise ValueError(exp)
        exp = int(exp)
    except (TypeError, ValueError):
        logger.warning("Logout attempt with missing or invalid exp", extra={"jti": jti})
        raise BadClaimError("Invalid token expiration claim.")

    if exp <= 0:
        logger.warning("Logout attempt with non-positive exp", extra={"jti": jti, "exp": exp})
        raise BadClaimError("Token expiration claim value must be positive.")

    now = now or datetime.now(timezone.utc)
    remaining = datetime.fromtimestamp(exp, tz=timezone.utc) - now
    if remaining <= timedelta(0):
        logger.info("Token already expired, nothing to blacklist", extra={"jti": jti})
        return None

    await store.put(revocation_key(jti), REVOKED_MARKER, remaining)
    logger.info(
        "Token blacklisted",
        extra={"jti": jti, "ttl_seconds": int(remaining.total_seconds())},
    )
    return remaining
