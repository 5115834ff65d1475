"""Shared dependencies for booking service routers."""

from fastapi import Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.errors import NotFound
from libs.db.session import get_async_db
from services.booking_service.models import MemberRef
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_current_member(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> MemberRef:
    """Resolve the authenticated user to a studio MemberRef."""
    result = await db.execute(
        select(MemberRef).where(MemberRef.auth_id == current_user.user_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFound("Member profile not found. Please complete registration.")
    return member
