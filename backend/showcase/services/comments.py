from __future__ import annotations

from enum import Enum
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from showcase.models import Comment, CommentReply, Like, Project, User
from showcase.schemas import AuthorRead, CommentListResponse, CommentRead, ReplyRead
from showcase.services.listing import Page


class CommentSort(str, Enum):
    newest = "newest"
    oldest = "oldest"
    most_liked = "mostLiked"


def parse_comment_sort(value: str | None) -> CommentSort:
    try:
        return CommentSort(value or CommentSort.newest.value)
    except ValueError:
        return CommentSort.newest


async def _like_stats(
    session: AsyncSession,
    column,
    ids: Sequence[int],
    viewer_id: int,
) -> tuple[dict[int, int], set[int]]:
    if not ids:
        return {}, set()
    res = await session.execute(
        select(column, func.count(Like.id)).where(column.in_(ids)).group_by(column)
    )
    counts = dict(res.all())
    liked: set[int] = set()
    if viewer_id > 0:
        res = await session.execute(select(column).where(column.in_(ids), Like.user_id == viewer_id))
        liked = set(res.scalars().all())
    return counts, liked


def _reply_read(reply: CommentReply, counts: dict[int, int], liked: set[int], project_author_id: int) -> ReplyRead:
    return ReplyRead(
        id=reply.id,
        content=reply.content,
        author=AuthorRead.model_validate(reply.author),
        likes_count=counts.get(reply.id, 0),
        is_liked=reply.id in liked,
        is_author=reply.author_id == project_author_id,
        created_at=reply.created_at,
        updated_at=reply.updated_at,
    )


async def list_comments(
    session: AsyncSession,
    project: Project,
    page: Page,
    sort: CommentSort = CommentSort.newest,
    viewer_id: int = 0,
) -> CommentListResponse:
    """A page of top-level comments with their full reply threads.

    ``mostLiked`` orders within the fetched page only; pages themselves are
    cut newest first.
    """
    res = await session.execute(select(func.count(Comment.id)).where(Comment.project_id == project.id))
    total = int(res.scalar_one() or 0)

    if sort is CommentSort.oldest:
        order_by = (Comment.created_at.asc(), Comment.id.asc())
    else:
        order_by = (Comment.created_at.desc(), Comment.id.desc())
    res = await session.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.project_id == project.id)
        .order_by(*order_by)
        .limit(page.limit)
        .offset(page.offset)
    )
    comments = list(res.scalars().all())
    comment_ids = [c.id for c in comments]

    replies_by_comment: dict[int, list[CommentReply]] = {cid: [] for cid in comment_ids}
    if comment_ids:
        res = await session.execute(
            select(CommentReply)
            .options(selectinload(CommentReply.author))
            .where(CommentReply.comment_id.in_(comment_ids))
            .order_by(CommentReply.created_at.asc(), CommentReply.id.asc())
        )
        for reply in res.scalars().all():
            replies_by_comment[reply.comment_id].append(reply)
    reply_ids = [r.id for replies in replies_by_comment.values() for r in replies]

    comment_counts, comment_liked = await _like_stats(session, Like.comment_id, comment_ids, viewer_id)
    reply_counts, reply_liked = await _like_stats(session, Like.reply_id, reply_ids, viewer_id)

    items = [
        CommentRead(
            id=c.id,
            content=c.content,
            author=AuthorRead.model_validate(c.author),
            likes_count=comment_counts.get(c.id, 0),
            is_liked=c.id in comment_liked,
            is_author=c.author_id == project.author_id,
            replies=[
                _reply_read(r, reply_counts, reply_liked, project.author_id)
                for r in replies_by_comment[c.id]
            ],
            created_at=c.created_at,
            updated_at=c.updated_at,
        )
        for c in comments
    ]
    if sort is CommentSort.most_liked:
        items.sort(key=lambda item: item.likes_count, reverse=True)

    return CommentListResponse(
        comments=items,
        has_more=page.has_more(len(items), total),
        total_comments=total,
    )


async def create_comment(session: AsyncSession, project: Project, author: User, content: str) -> CommentRead:
    comment = Comment(project_id=project.id, author_id=author.id, content=content)
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return CommentRead(
        id=comment.id,
        content=comment.content,
        author=AuthorRead.model_validate(author),
        is_author=author.id == project.author_id,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


async def get_comment(session: AsyncSession, comment_id: int) -> Comment | None:
    return await session.get(Comment, comment_id)


async def get_reply(session: AsyncSession, reply_id: int) -> CommentReply | None:
    return await session.get(CommentReply, reply_id)


async def create_reply(
    session: AsyncSession, comment: Comment, project: Project, author: User, content: str
) -> ReplyRead:
    reply = CommentReply(comment_id=comment.id, author_id=author.id, content=content)
    session.add(reply)
    await session.commit()
    await session.refresh(reply)
    return ReplyRead(
        id=reply.id,
        content=reply.content,
        author=AuthorRead.model_validate(author),
        is_author=author.id == project.author_id,
        created_at=reply.created_at,
        updated_at=reply.updated_at,
    )
