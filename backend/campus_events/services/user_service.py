"""
Profile of the calling user.
"""

from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import NotFoundError
from campus_events.core.logging import get_logger
from campus_events.core.permissions import Principal, require_principal
from campus_events.models.user import User

logger = get_logger(__name__)

PROFILE_FIELDS = ("name", "phone", "major")


async def get_profile(db: AsyncSession, principal: Optional[Principal]) -> User:
    principal = require_principal(principal)
    user = await db.get(User, principal.id)
    if not user:
        raise NotFoundError("user not found")
    return user


async def update_profile(
    db: AsyncSession,
    principal: Optional[Principal],
    fields: Mapping[str, Any],
) -> User:
    """Update name, phone and major. Other keys are ignored."""
    user = await get_profile(db, principal)

    changes = {name: fields[name] for name in PROFILE_FIELDS if fields.get(name) is not None}
    for name, value in changes.items():
        setattr(user, name, value.strip() if isinstance(value, str) else value)
    await db.commit()
    await db.refresh(user)

    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user
