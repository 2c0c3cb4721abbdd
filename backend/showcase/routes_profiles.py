from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import User
from .routes_auth import get_viewer_id, require_user
from .schemas import (
    LikedProjectsResponse,
    ProfileListResponse,
    ProfileResponse,
    ProfileUpdate,
    UserRead,
    UserResponse,
)
from .services.listing import (
    ListingFilters,
    Page,
    SortMode,
    get_liked_projects,
    list_projects,
    resolve_author_ids,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])
profile_router = APIRouter(prefix="/api/profile", tags=["profiles"])

SessionDep = Depends(get_session)

PROFILE_PROJECTS_LIMIT = 100


@router.get("", response_model=ProfileListResponse)
async def list_profiles(
    tag: str | None = Query(None),
    role: str | None = Query(None, description="Coding tool used by the author"),
    session: AsyncSession = SessionDep,
):
    """User directory.

    ``tag`` and ``role`` each narrow the directory to a set of authors; when
    both are given only authors in both sets are listed.
    """
    author_ids = await resolve_author_ids(
        session,
        tag=(tag or "").strip() or None,
        tool=(role or "").strip() or None,
    )
    stmt = select(User).order_by(User.username)
    if author_ids is not None:
        if not author_ids:
            return ProfileListResponse(profiles=[])
        stmt = stmt.where(User.id.in_(author_ids))
    res = await session.execute(stmt)
    return ProfileListResponse(profiles=[UserRead.model_validate(u) for u in res.scalars().all()])


@router.get("/{username}", response_model=ProfileResponse)
async def get_profile(
    username: str,
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
):
    res = await session.execute(select(User).where(User.username == username))
    user = res.scalars().first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    listing = await list_projects(
        session,
        ListingFilters(viewer_id=viewer_id, author_username=user.username),
        Page(page=1, limit=PROFILE_PROJECTS_LIMIT),
        SortMode.latest,
    )
    return ProfileResponse(user=UserRead.model_validate(user), projects=listing.projects)


@profile_router.get("/liked", response_model=LikedProjectsResponse)
async def liked_projects(viewer_id: int = Depends(get_viewer_id), session: AsyncSession = SessionDep):
    """Projects the viewer has liked; empty for anonymous callers."""
    if not viewer_id:
        return LikedProjectsResponse(projects=[])
    return LikedProjectsResponse(projects=await get_liked_projects(session, viewer_id, viewer_id))


@profile_router.patch("", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    fields = data.model_dump(exclude_unset=True)
    if fields.get("email") is not None:
        email = str(fields["email"])
        res = await session.execute(select(User.id).where(User.email == email, User.id != user.id))
        if res.first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        user.email = email
    if "bio" in fields:
        user.bio = fields["bio"]
    if "avatar_url" in fields:
        user.avatar_url = fields["avatar_url"]
    await session.commit()
    await session.refresh(user)
    logger.info(f"[profiles] user {user.id} updated profile fields {sorted(fields)}")
    return UserResponse(user=UserRead.model_validate(user))
