from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from prometheus_client import Counter
import sentry_sdk

from cinema_api.models.schemas import CurrentUser, LoginIn, MessageOut, RegisterIn, TokenOut
from cinema_api.core.database import get_db
from cinema_api.core.errors import BadClaimError, ConflictError
from cinema_api.core.revocation import RevocationStore
from cinema_api.core.security import (
    get_current_user,
    get_logout_claims,
    get_revocation_store,
    get_token_issuer,
    unauthorized,
    verify_password,
)
from cinema_api.core.tokens import TokenIssuer, revoke_token
from cinema_api.services.users import UserService
import logging
logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_ATTEMPTS = Counter(
    "auth_login_attempts_total",
    "Login attempts by outcome",
    ["outcome"],
)
LOGOUTS = Counter(
    "auth_logouts_total",
    "Successful logouts, split by whether a blacklist entry was written",
    ["blacklisted"],
)


@router.post("/login", response_model=TokenOut)
def login(
    credentials: LoginIn,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    logger.info("Login attempt", extra={"username": credentials.username})
    user = UserService(db).find_by_username(credentials.username)
    if user is None:
        LOGIN_ATTEMPTS.labels(outcome="unknown_user").inc()
        logger.warning("Login for non-existent username", extra={"username": credentials.username})
        unauthorized("Invalid username or password.")

    if not user.is_active:
        LOGIN_ATTEMPTS.labels(outcome="inactive").inc()
        logger.warning("Login for inactive user", extra={"username": credentials.username})
        unauthorized("User account is inactive.")

    if not verify_password(credentials.password, user.password_hash):
        LOGIN_ATTEMPTS.labels(outcome="bad_password").inc()
        logger.warning("Failed login", extra={"username": credentials.username})
        unauthorized("Invalid username or password.")

    LOGIN_ATTEMPTS.labels(outcome="success").inc()
    logger.info("Login success", extra={"username": user.username})
    return {"token": issuer.issue(user)}


@router.post("/register", response_model=TokenOut)
def register(
    data: RegisterIn,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    logger.info("Register attempt", extra={"username": data.username})
    try:
        user = UserService(db).create_user(data)
    except ConflictError as e:
        logger.warning("Registration rejected", extra={"username": data.username, "reason": str(e)})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("Registration failed", extra={"username": data.username})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while processing your request.",
        )

    logger.info("User registered", extra={"username": user.username})
    return {"token": issuer.issue(user)}


@router.get("/me", response_model=CurrentUser)
def me(current_user: CurrentUser = Depends(get_current_user)):
    logger.info("User info requested", extra={"username": current_user.username})
    return current_user


@router.post("/logout", response_model=MessageOut)
async def logout(
    claims: dict = Depends(get_logout_claims),
    store: RevocationStore = Depends(get_revocation_store),
):
    try:
        ttl = await revoke_token(claims, store)
    except BadClaimError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    LOGOUTS.labels(blacklisted=str(ttl is not None).lower()).inc()
    logger.info("Logout", extra={"username": claims.get("username"), "jti": claims.get("jti")})
    return {"message": "Successfully logged out."}
