"""Badge API endpoints: /api/badges/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.auth.dependencies import Identity, get_current_identity, require_admin
from roadbook.badges.schemas import (
    AwardBadgeRequest,
    BadgeCreateRequest,
    BadgeResponse,
    BadgeUpdateRequest,
    BadgeWithHoldersResponse,
    CheckBadgesResponse,
    LeaderboardEntry,
    UserBadgeResponse,
)
from roadbook.badges.service import (
    award_badge,
    check_and_award_badges,
    create_badge,
    delete_badge,
    get_badge,
    get_badges_by_category,
    get_leaderboard,
    get_user_badges,
    list_badges,
    revoke_badge,
    update_badge,
)
from roadbook.database import get_session
from roadbook.redis_client import get_optional_redis
from roadbook.schemas import MessageResponse

router = APIRouter(prefix="/api/badges", tags=["Badges"])


# ── Public endpoints ──


@router.get("", response_model=list[BadgeWithHoldersResponse])
async def list_all(db: AsyncSession = Depends(get_session)):
    """All badge definitions with holder counts."""
    rows = await list_badges(db)
    return [
        BadgeWithHoldersResponse.model_validate(badge).model_copy(update={"holders": holders})
        for badge, holders in rows
    ]


@router.get("/categories/{category}", response_model=list[BadgeResponse])
async def by_category(category: str, db: AsyncSession = Depends(get_session)):
    return [BadgeResponse.model_validate(b) for b in await get_badges_by_category(db, category)]


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Users with the most badges."""
    return [LeaderboardEntry.model_validate(entry) for entry in await get_leaderboard(db, limit)]


# ── Authenticated endpoints ──


@router.get("/me", response_model=list[UserBadgeResponse])
async def my_badges(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    """Current user's earned badges."""
    return [UserBadgeResponse.model_validate(ub) for ub in await get_user_badges(db, identity.user_id)]


@router.get("/users/{user_id}", response_model=list[UserBadgeResponse])
async def user_badges(
    user_id: int,
    _identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
):
    return [UserBadgeResponse.model_validate(ub) for ub in await get_user_badges(db, user_id)]


@router.post("/check-mine", response_model=CheckBadgesResponse)
async def check_mine(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Evaluate badge criteria for the caller and award what they have earned."""
    awarded = await check_and_award_badges(db, identity.user_id, redis=redis)
    await db.commit()
    return CheckBadgesResponse(
        message=f"{len(awarded)} new badge(s) awarded",
        badges=[UserBadgeResponse.model_validate(ub) for ub in awarded],
    )


@router.get("/{badge_id}", response_model=BadgeResponse)
async def get_one(badge_id: int, db: AsyncSession = Depends(get_session)):
    return BadgeResponse.model_validate(await get_badge(db, badge_id))


# ── Admin endpoints ──


@router.post("/award", response_model=UserBadgeResponse, status_code=status.HTTP_201_CREATED)
async def award(
    body: AwardBadgeRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_optional_redis),
):
    """Award a badge to a user. 409 if they already hold it."""
    user_badge = await award_badge(db, body.user_id, body.badge_id, redis=redis)
    await db.commit()
    return UserBadgeResponse.model_validate(user_badge)


@router.delete("/{user_id}/{badge_id}", response_model=MessageResponse)
async def revoke(
    user_id: int,
    badge_id: int,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await revoke_badge(db, user_id, badge_id)
    await db.commit()
    return MessageResponse(message="Badge revoked successfully")


@router.post("", response_model=BadgeResponse, status_code=status.HTTP_201_CREATED)
async def create(
    body: BadgeCreateRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    badge = await create_badge(db, **body.model_dump())
    await db.commit()
    return BadgeResponse.model_validate(badge)


@router.put("/{badge_id}", response_model=BadgeResponse)
async def update(
    badge_id: int,
    body: BadgeUpdateRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    badge = await update_badge(db, badge_id, **body.model_dump(exclude_unset=True))
    await db.commit()
    return BadgeResponse.model_validate(badge)


@router.delete("/{badge_id}", response_model=MessageResponse)
async def remove(
    badge_id: int,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Delete a badge and all of its awards."""
    await delete_badge(db, badge_id)
    await db.commit()
    return MessageResponse(message="Badge deleted successfully")
