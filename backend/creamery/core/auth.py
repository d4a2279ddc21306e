"""Authentication and ownership dependencies for API routes.

Provides API Key authentication via the X-API-Key header.
When API_KEY is not configured (empty string), authentication is disabled
to allow development without credentials.

Every resource belongs to a shop. The shop is taken from the X-Shop-Id header
and the acting user from X-User-Id (defaulting to the shop itself).
"""

import secrets
import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from creamery.core.config import settings

_api_key_header = APIKeyHeader(
    name=settings.API_KEY_HEADER,
    auto_error=False,
)
_shop_header = APIKeyHeader(name=settings.SHOP_HEADER, auto_error=False)
_user_header = APIKeyHeader(name=settings.USER_HEADER, auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Security(_api_key_header)] = None,
) -> str:
    """Validate the API key from the request header.

    Raises HTTP 401 if the key is missing and HTTP 403 if invalid.
    When ``settings.API_KEY`` is empty, authentication is skipped.
    """
    if not settings.API_KEY:
        return "dev-no-auth"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
        )

    if not secrets.compare_digest(api_key, settings.API_KEY):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


def _parse_uuid_header(value: str | None, header: str) -> uuid.UUID:
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header} header",
        )
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} header",
        )


async def get_owner_id(
    shop_id: Annotated[str | None, Security(_shop_header)] = None,
) -> uuid.UUID:
    """Return the owning shop for the current request."""
    return _parse_uuid_header(shop_id, settings.SHOP_HEADER)


async def get_actor_id(
    owner_id: Annotated[uuid.UUID, Depends(get_owner_id)],
    user_id: Annotated[str | None, Security(_user_header)] = None,
) -> uuid.UUID:
    """Return the user performing the request, used for audit fields."""
    if user_id is None:
        return owner_id
    return _parse_uuid_header(user_id, settings.USER_HEADER)


OwnerId = Annotated[uuid.UUID, Depends(get_owner_id)]
ActorId = Annotated[uuid.UUID, Depends(get_actor_id)]
