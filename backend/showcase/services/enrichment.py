from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.models import Bookmark, Comment, Like, Project
from showcase.schemas import AuthorRead, ProjectRead
from showcase.services.tags import tags_for_projects


async def _project_like_counts(session: AsyncSession, project_ids: Sequence[int]) -> dict[int, int]:
    res = await session.execute(
        select(Like.project_id, func.count(Like.id))
        .where(Like.project_id.in_(project_ids), Like.comment_id.is_(None), Like.reply_id.is_(None))
        .group_by(Like.project_id)
    )
    return dict(res.all())


async def _comment_counts(session: AsyncSession, project_ids: Sequence[int]) -> dict[int, int]:
    res = await session.execute(
        select(Comment.project_id, func.count(Comment.id))
        .where(Comment.project_id.in_(project_ids))
        .group_by(Comment.project_id)
    )
    return dict(res.all())


async def _liked_by(session: AsyncSession, project_ids: Sequence[int], viewer_id: int) -> set[int]:
    if viewer_id <= 0:
        return set()
    res = await session.execute(
        select(Like.project_id).where(Like.project_id.in_(project_ids), Like.user_id == viewer_id)
    )
    return set(res.scalars().all())


async def _bookmarked_by(session: AsyncSession, project_ids: Sequence[int], viewer_id: int) -> set[int]:
    if viewer_id <= 0:
        return set()
    res = await session.execute(
        select(Bookmark.project_id).where(Bookmark.project_id.in_(project_ids), Bookmark.user_id == viewer_id)
    )
    return set(res.scalars().all())


def serialize_project(
    p: Project,
    *,
    tags: list[str],
    likes_count: int = 0,
    comments_count: int = 0,
    is_liked: bool = False,
    is_bookmarked: bool = False,
) -> ProjectRead:
    """Build the wire shape of a project. ``p.author`` must already be loaded."""
    return ProjectRead(
        id=p.id,
        title=p.title,
        description=p.description,
        long_description=p.long_description,
        project_url=p.project_url,
        image_url=p.image_url,
        vibe_coding_tool=p.vibe_coding_tool,
        author=AuthorRead.model_validate(p.author),
        tags=tags,
        likes_count=likes_count,
        comments_count=comments_count,
        views_count=p.views_count,
        shares_count=p.shares_count,
        is_liked=is_liked,
        is_bookmarked=is_bookmarked,
        featured=p.featured,
        is_private=p.is_private,
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


async def enrich_projects(session: AsyncSession, projects: Sequence[Project], viewer_id: int = 0) -> list[ProjectRead]:
    """Attach tags, counters and viewer flags to a page of projects.

    One grouped query per derived field instead of one per project. The
    returned list keeps the order of ``projects``. Anonymous viewers (id 0)
    never match a like or bookmark.
    """
    if not projects:
        return []
    ids = [p.id for p in projects]
    tags = await tags_for_projects(session, ids)
    likes = await _project_like_counts(session, ids)
    comments = await _comment_counts(session, ids)
    liked = await _liked_by(session, ids, viewer_id)
    bookmarked = await _bookmarked_by(session, ids, viewer_id)
    return [
        serialize_project(
            p,
            tags=tags.get(p.id, []),
            likes_count=likes.get(p.id, 0),
            comments_count=comments.get(p.id, 0),
            is_liked=p.id in liked,
            is_bookmarked=p.id in bookmarked,
        )
        for p in projects
    ]
