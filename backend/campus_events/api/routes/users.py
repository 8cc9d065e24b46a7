"""
Current user endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.api.deps import get_current_principal
from campus_events.core.permissions import Principal
from campus_events.db.session import get_db
from campus_events.schemas.user import UserResponse, UserProfileUpdate
from campus_events.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_profile(db, principal)


@router.put("/me", response_model=UserResponse)
async def update_current_user_profile(
    payload: UserProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Edit name, phone or major. Role, college and student id are read-only."""
    return await user_service.update_profile(db, principal, payload.model_dump(exclude_unset=True))
