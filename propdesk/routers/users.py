import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.database import get_db, utcnow
from propdesk.core.deps import get_current_user
from propdesk.core.errors import ConflictError, ValidationError
from propdesk.core.security import hash_password, verify_password
from propdesk.models.user import User
from propdesk.schemas.user import UserPasswordChange, UserProfileUpdate, UserResponse, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

SEARCH_LIMIT = 10


@router.get("/search", response_model=list[UserSummary])
async def search_users(
    q: str = Query(min_length=1, max_length=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active users whose name or email contains ``q``, for picking a message recipient."""
    term = q.strip()
    if not term:
        raise ValidationError("Search query is required")
    safe_q = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    result = await db.execute(
        select(User)
        .where(
            or_(
                User.full_name.ilike(f"%{safe_q}%", escape="\\"),
                User.email.ilike(f"%{safe_q}%", escape="\\"),
            ),
            User.is_active.is_(True),
            User.id != user.id,
        )
        .order_by(User.full_name)
        .limit(SEARCH_LIMIT)
    )
    return result.scalars().all()


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    payload: UserProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = payload.changes()

    if "email" in data and data["email"] != user.email:
        existing = await db.execute(
            select(User.id).where(User.email == data["email"], User.id != user.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Email already in use")

    for field, value in data.items():
        setattr(user, field, value)
    user.updated_at = utcnow()

    await db.flush()
    await db.refresh(user)
    return user


@router.post("/me/change-password", status_code=204)
async def change_password(
    payload: UserPasswordChange,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(payload.current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")

    user.hashed_password = hash_password(payload.new_password)
    user.updated_at = utcnow()
    await db.flush()
    logger.info("Password changed for user %s", user.id)
