from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import Comment, CommentReply, NotificationType, Project, User
from .routes_auth import require_user
from .routes_projects import parse_id
from .schemas import CommentCreate, ReplyResponse, SuccessResponse
from .services import comments as comment_service
from .services import engagement
from .services.listing import get_project_model
from .services.notify import NotificationBus, excerpt, get_notification_bus, notify_user

router = APIRouter(prefix="/api", tags=["comments"])

SessionDep = Depends(get_session)


async def _visible_project(session: AsyncSession, project_id: int, viewer_id: int, detail: str) -> Project:
    # comments on another author's private project are reported as missing
    project = await get_project_model(session, project_id)
    if not project or (project.is_private and project.author_id != viewer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return project


async def _comment_or_404(session: AsyncSession, raw_id: str, viewer_id: int) -> tuple[Comment, Project]:
    comment = await comment_service.get_comment(session, parse_id(raw_id, "comment"))
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    project = await _visible_project(session, comment.project_id, viewer_id, "Comment not found")
    return comment, project


async def _reply_or_404(session: AsyncSession, raw_id: str, viewer_id: int) -> CommentReply:
    reply = await comment_service.get_reply(session, parse_id(raw_id, "reply"))
    if not reply:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reply not found")
    comment = await comment_service.get_comment(session, reply.comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reply not found")
    await _visible_project(session, comment.project_id, viewer_id, "Reply not found")
    return reply


@router.post("/comments/{comment_id}/replies", response_model=ReplyResponse, status_code=status.HTTP_201_CREATED)
async def create_reply(
    comment_id: str,
    data: CommentCreate,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
    bus: NotificationBus = Depends(get_notification_bus),
):
    comment, project = await _comment_or_404(session, comment_id, user.id)
    reply = await comment_service.create_reply(session, comment, project, user, data.content)
    await notify_user(
        session,
        bus,
        recipient_id=comment.author_id,
        actor=user,
        type=NotificationType.reply_comment,
        project={"id": project.id, "title": project.title},
        comment={"id": comment.id, "content": excerpt(data.content)},
    )
    return ReplyResponse(reply=reply)


@router.post("/comments/{comment_id}/like", response_model=SuccessResponse)
async def like_comment(comment_id: str, user: User = Depends(require_user), session: AsyncSession = SessionDep):
    comment, _ = await _comment_or_404(session, comment_id, user.id)
    await engagement.add_like(session, user.id, engagement.CommentLike(comment.id))
    return SuccessResponse()


@router.delete("/comments/{comment_id}/like", response_model=SuccessResponse)
async def unlike_comment(comment_id: str, user: User = Depends(require_user), session: AsyncSession = SessionDep):
    comment, _ = await _comment_or_404(session, comment_id, user.id)
    await engagement.remove_like(session, user.id, engagement.CommentLike(comment.id))
    return SuccessResponse()


@router.post("/replies/{reply_id}/like", response_model=SuccessResponse)
async def like_reply(reply_id: str, user: User = Depends(require_user), session: AsyncSession = SessionDep):
    reply = await _reply_or_404(session, reply_id, user.id)
    await engagement.add_like(session, user.id, engagement.ReplyLike(reply.id))
    return SuccessResponse()


@router.delete("/replies/{reply_id}/like", response_model=SuccessResponse)
async def unlike_reply(reply_id: str, user: User = Depends(require_user), session: AsyncSession = SessionDep):
    reply = await _reply_or_404(session, reply_id, user.id)
    await engagement.remove_like(session, user.id, engagement.ReplyLike(reply.id))
    return SuccessResponse()
