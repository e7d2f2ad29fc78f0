"""
API key guard for mutating endpoints.

Reads stay open; anything that writes players, matches or seasons needs the
X-API-Key header. Destructive admin operations (player and season deletion)
additionally need X-Admin-Token when ADMIN_TOKEN is configured.
"""
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
from starlette.requests import Request

from tennis_league.core.config import settings
from tennis_league.core.logging import get_logger

logger = get_logger(__name__)

API_KEY_NAME = "X-API-Key"
ADMIN_TOKEN_NAME = "X-Admin-Token"

api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)
admin_token_header = APIKeyHeader(name=ADMIN_TOKEN_NAME, auto_error=False)


def require_api_key(request: Request, api_key: Optional[str] = Security(api_key_header)) -> str:
    """
    Validate the API key from the request header.

    Raises:
        HTTPException: 401 if the key is missing, 403 if it is wrong
    """
    if not settings.API_KEY:
        if settings.is_production():
            logger.warning("API_KEY not configured in production - rejecting request")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="API key required. Configure API_KEY environment variable."
            )
        logger.debug("API_KEY not configured - allowing write in non-production mode")
        return "_dev_skip_"

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key missing. Provide X-API-Key header."
        )

    if api_key != settings.API_KEY:
        logger.warning(f"Invalid API key attempt from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key."
        )

    return api_key


def require_admin(
    request: Request,
    api_key: str = Security(require_api_key),
    admin_token: Optional[str] = Security(admin_token_header),
) -> str:
    """API key plus admin token (only enforced when ADMIN_TOKEN is set)."""
    if not settings.ADMIN_TOKEN:
        return api_key

    if not admin_token or admin_token != settings.ADMIN_TOKEN:
        logger.warning(f"Admin operation denied on {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token."
        )

    return api_key
