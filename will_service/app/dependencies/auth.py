from typing import Optional

from fastapi import Header, HTTPException
import logging

logger = logging.getLogger(__name__)


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    FastAPI dependency returning the authenticated user id.
    The id is set by the authentication proxy in front of the service and trusted as-is.
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning("Request rejected: missing X-User-Id header.")
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()
