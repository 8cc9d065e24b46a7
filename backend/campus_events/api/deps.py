"""
Request dependencies: database session and the calling principal.
"""

from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import AuthError
from campus_events.core.permissions import Principal, require_principal
from campus_events.core.security import decode_access_token
from campus_events.db.session import get_db
from campus_events.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    """Resolve the principal when a bearer token is sent; None for anonymous calls."""
    if credentials is None:
        return None

    user_id = decode_access_token(credentials.credentials)
    user = await db.get(User, user_id)
    if not user:
        raise AuthError("user does not exist or was deleted")

    principal = Principal.from_user(user)
    structlog.contextvars.bind_contextvars(principal_id=principal.id, role=principal.role.value)
    return principal


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    return require_principal(principal)
