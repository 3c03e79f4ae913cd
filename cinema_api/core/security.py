from passlib.context import CryptContext
from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from fastapi import status
from prometheus_client import Counter
from typing import Optional
import sentry_sdk

from cinema_api.core.config import Settings, get_settings
from cinema_api.core.errors import AuthenticationError, MissingClaimError
from cinema_api.core.revocation import RevocationStore
from cinema_api.core.tokens import AuthenticationGate, TokenIssuer
from cinema_api.models.schemas import CurrentUser

import logging

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

REJECTED_TOKENS = Counter(
    "auth_rejected_tokens_total",
    "Bearer tokens rejected by the authentication gate",
    ["reason"],
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        # passlib raises ValueError (UnknownHashError) for malformed hashes
        logger.warning("Password hash could not be verified", extra={"error": type(e).__name__})
        return False


def get_revocation_store(request: Request) -> RevocationStore:
    return request.app.state.revocation_store


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer(settings.jwt)


def get_auth_gate(
    settings: Settings = Depends(get_settings),
    store: RevocationStore = Depends(get_revocation_store),
) -> AuthenticationGate:
    return AuthenticationGate(settings.jwt, store)


def unauthorized(detail: str):
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    token: Optional[str] = Depends(oauth2_scheme),
    gate: AuthenticationGate = Depends(get_auth_gate),
) -> dict:
    if not token:
        unauthorized("Not authenticated")
    logger.debug("Validating token", extra={"token": token[:8] + "..."})
    try:
        return await gate.authenticate(token)
    except AuthenticationError as e:
        REJECTED_TOKENS.labels(reason=type(e).__name__).inc()
        sentry_sdk.add_breadcrumb(category="auth", message=str(e), level="warning")
        unauthorized(str(e))


def _current_user_from_claims(claims: dict) -> CurrentUser:
    return CurrentUser(
        id=int(claims["sub"]),
        username=claims.get("username", ""),
        email=claims.get("email", ""),
        role=claims.get("role", ""),
        jti=claims["jti"],
    )


async def get_current_user(claims: dict = Depends(get_token_claims)) -> CurrentUser:
    try:
        user = _current_user_from_claims(claims)
    except (KeyError, TypeError, ValueError):
        logger.warning("Token subject is malformed", extra={"jti": claims.get("jti")})
        unauthorized("Invalid token")
    logger.info("Authenticated user", extra={"username": user.username, "jti": user.jti})
    return user


async def get_logout_claims(
    token: Optional[str] = Depends(oauth2_scheme),
    gate: AuthenticationGate = Depends(get_auth_gate),
) -> dict:
    """Like ``get_token_claims``, but a token that only lacks ``jti`` or ``exp``
    is answered with 400 so the caller learns it cannot be blacklisted."""
    if not token:
        unauthorized("Not authenticated")
    try:
        return await gate.authenticate(token)
    except MissingClaimError as e:
        REJECTED_TOKENS.labels(reason=type(e).__name__).inc()
        if e.claim == "jti":
            detail = "Token ID (JTI) not found in token."
        elif e.claim == "exp":
            detail = "Invalid token expiration claim."
        else:
            unauthorized(str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    except AuthenticationError as e:
        REJECTED_TOKENS.labels(reason=type(e).__name__).inc()
        unauthorized(str(e))


def require_roles(*allowed_roles: str):

    def role_checker(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.warning(
                "Role check failed",
                extra={"username": current_user.username, "role": current_user.role},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted",
            )
        return current_user
    return Depends(role_checker)
