from fastapi import HTTPException, status
import logging
import sentry_sdk

logger = logging.getLogger(__name__)


def check_id(id: int, entity: str) -> None:
    if id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {entity} ID.")


def not_found(detail: str):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def internal_error(e: Exception, detail: str, **extra):
    """Report an unexpected failure and answer 500."""
    sentry_sdk.capture_exception(e)
    logger.error(detail, exc_info=e, extra=extra)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
