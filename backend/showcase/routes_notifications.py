from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .models import Notification, User
from .routes_auth import get_viewer_id, require_user
from .routes_projects import parse_id
from .schemas import NotificationCountResponse, NotificationListResponse, NotificationRead, SuccessResponse
from .services.listing import parse_int_param

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

SessionDep = Depends(get_session)


async def _unread_count(session: AsyncSession, user_id: int) -> int:
    res = await session.execute(
        select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return int(res.scalar_one() or 0)


async def _owned_or_404(session: AsyncSession, raw_id: str, user: User) -> Notification:
    notification = await session.get(Notification, parse_id(raw_id, "notification"))
    if not notification or notification.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    unread_only: bool = Query(False, alias="unreadOnly"),
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    """The viewer's notifications, newest first.

    ``total`` counts what the filter matches; ``unreadCount`` is always the
    overall unread figure.
    """
    conditions = [Notification.user_id == user.id]
    if unread_only:
        conditions.append(Notification.is_read.is_(False))

    res = await session.execute(select(func.count(Notification.id)).where(and_(*conditions)))
    total = int(res.scalar_one() or 0)

    res = await session.execute(
        select(Notification)
        .options(selectinload(Notification.actor))
        .where(and_(*conditions))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(parse_int_param(limit, 20, maximum=100))
        .offset(parse_int_param(offset, 0))
    )
    notifications = [NotificationRead.model_validate(n) for n in res.scalars().all()]
    return NotificationListResponse(
        notifications=notifications,
        total=total,
        unread_count=await _unread_count(session, user.id),
    )


@router.get("/count", response_model=NotificationCountResponse)
async def unread_count(viewer_id: int = Depends(get_viewer_id), session: AsyncSession = SessionDep):
    """Unread badge count; anonymous callers get 0."""
    if not viewer_id:
        return NotificationCountResponse(count=0)
    return NotificationCountResponse(count=await _unread_count(session, viewer_id))


@router.patch("", response_model=SuccessResponse)
async def mark_all_read(user: User = Depends(require_user), session: AsyncSession = SessionDep):
    await session.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return SuccessResponse()


@router.post("/{notification_id}/read", response_model=SuccessResponse)
async def mark_read(
    notification_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    notification = await _owned_or_404(session, notification_id, user)
    notification.is_read = True
    await session.commit()
    return SuccessResponse()


@router.delete("/{notification_id}", response_model=SuccessResponse)
async def delete_notification(
    notification_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    notification = await _owned_or_404(session, notification_id, user)
    await session.execute(delete(Notification).where(Notification.id == notification.id))
    await session.commit()
    return SuccessResponse()
