"""
Regional Franchise Platform - FastAPI Dependencies

Shared dependencies for database sessions and caller identity.

Authentication happens upstream; the gateway forwards the authenticated
actor in the X-Actor-Id header and this service only requires it to be
present on every call.
"""

from typing import Optional

from fastapi import Header

from franchise.database import get_async_session
from franchise.utils.error_handling import AuthenticationException

__all__ = ["get_async_session", "get_actor"]


async def get_actor(
    x_actor_id: Optional[str] = Header(default=None, alias="X-Actor-Id"),
) -> str:
    """
    Actor identifier of the caller.

    Raises:
        AuthenticationException: header missing or blank
    """
    if not x_actor_id or not x_actor_id.strip():
        raise AuthenticationException("X-Actor-Id header is required")
    return x_actor_id.strip()

