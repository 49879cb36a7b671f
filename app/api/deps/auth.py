from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import NotAuthenticatedError

logger = structlog.get_logger(__name__)

# HTTP Bearer token extractor; errors are raised below so they carry a return code
security = HTTPBearer(auto_error=False)


async def get_current_actor_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """
    Identify the authenticated actor.

    Tokens are verified by the gateway in front of this service, which
    forwards the actor's user ID as the bearer credential.
    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError()

    try:
        actor_id = int(credentials.credentials)
    except ValueError:
        logger.warning(
            "Malformed bearer credential",
            token_preview=credentials.credentials[:4] + "***",
        )
        raise NotAuthenticatedError("Invalid authorization token")

    if actor_id <= 0:
        raise NotAuthenticatedError("Invalid authorization token")

    return actor_id
