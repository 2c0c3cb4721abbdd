"""
Engagement writes: likes, bookmarks, views and shares.

A like points at exactly one of a project, a comment or a reply. Callers pick
the target through one of the ``*Like`` variants below; the row values are
derived from the variant, so a like can never carry two targets.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.db import dialect_name
from showcase.models import Bookmark, Like, Project, ProjectView, Share

logger = logging.getLogger(__name__)

LIKE_TARGET_COLUMNS = ("project_id", "comment_id", "reply_id")


@dataclass(frozen=True)
class ProjectLike:
    kind: ClassVar[str] = "project"
    column: ClassVar[str] = "project_id"
    project_id: int

    @property
    def target_id(self) -> int:
        return self.project_id


@dataclass(frozen=True)
class CommentLike:
    kind: ClassVar[str] = "comment"
    column: ClassVar[str] = "comment_id"
    comment_id: int

    @property
    def target_id(self) -> int:
        return self.comment_id


@dataclass(frozen=True)
class ReplyLike:
    kind: ClassVar[str] = "reply"
    column: ClassVar[str] = "reply_id"
    reply_id: int

    @property
    def target_id(self) -> int:
        return self.reply_id


LikeTarget = Union[ProjectLike, CommentLike, ReplyLike]


def like_values(target: LikeTarget, user_id: int) -> dict[str, int | None]:
    """Row values for a like: the target column set, the other two null."""
    if not isinstance(target, (ProjectLike, CommentLike, ReplyLike)):
        raise TypeError(f"Unsupported like target: {target!r}")
    values: dict[str, int | None] = {column: None for column in LIKE_TARGET_COLUMNS}
    values[target.column] = target.target_id
    values["user_id"] = user_id
    return values


def target_of(like: Like) -> LikeTarget:
    """Rebuild the variant from a stored row, rejecting malformed rows."""
    present = [column for column in LIKE_TARGET_COLUMNS if getattr(like, column) is not None]
    if len(present) != 1:
        raise ValueError(f"Like {like.id} has {len(present)} targets")
    column = present[0]
    if column == "project_id":
        return ProjectLike(like.project_id)
    if column == "comment_id":
        return CommentLike(like.comment_id)
    return ReplyLike(like.reply_id)


def _target_clause(target: LikeTarget):
    others = [getattr(Like, c).is_(None) for c in LIKE_TARGET_COLUMNS if c != target.column]
    return [getattr(Like, target.column) == target.target_id, *others]


def _insert(session: AsyncSession, model):
    if dialect_name(session) == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


async def add_like(session: AsyncSession, user_id: int, target: LikeTarget) -> bool:
    """Idempotent: a second like by the same user is a no-op.

    Returns True only when a new like row was written.
    """
    stmt = (
        _insert(session, Like)
        .values(**like_values(target, user_id))
        .on_conflict_do_nothing(index_elements=["user_id", target.column])
    )
    res = await session.execute(stmt)
    await session.commit()
    return bool(res.rowcount)


async def remove_like(session: AsyncSession, user_id: int, target: LikeTarget) -> None:
    await session.execute(delete(Like).where(Like.user_id == user_id, *_target_clause(target)))
    await session.commit()


async def count_likes(session: AsyncSession, target: LikeTarget) -> int:
    res = await session.execute(select(func.count(Like.id)).where(*_target_clause(target)))
    return int(res.scalar_one() or 0)


async def add_bookmark(session: AsyncSession, user_id: int, project_id: int) -> None:
    stmt = (
        _insert(session, Bookmark)
        .values(user_id=user_id, project_id=project_id)
        .on_conflict_do_nothing(index_elements=["user_id", "project_id"])
    )
    await session.execute(stmt)
    await session.commit()


async def remove_bookmark(session: AsyncSession, user_id: int, project_id: int) -> None:
    await session.execute(
        delete(Bookmark).where(Bookmark.user_id == user_id, Bookmark.project_id == project_id)
    )
    await session.commit()


async def record_view(session: AsyncSession, project_id: int, now: datetime | None = None) -> None:
    """Bump the lifetime counter and this month's aggregate together.

    The monthly row is upserted so concurrent first views of a month cannot
    create duplicate rows.
    """
    now = now or datetime.now(timezone.utc)
    await session.execute(
        update(Project)
        .where(Project.id == project_id)
        .values(views_count=Project.views_count + 1)
        .execution_options(synchronize_session=False)
    )
    stmt = _insert(session, ProjectView).values(
        project_id=project_id,
        month=now.month,
        year=now.year,
        views_count=1,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["project_id", "month", "year"],
        set_={"views_count": ProjectView.__table__.c.views_count + 1},
    )
    await session.execute(stmt)
    await session.commit()


async def share_project(session: AsyncSession, project_id: int, platform: str, user_id: int | None = None) -> int:
    """Record a share and return the project's share count."""
    session.add(Share(project_id=project_id, user_id=user_id or None, platform=platform))
    await session.execute(
        update(Project)
        .where(Project.id == project_id)
        .values(shares_count=Project.shares_count + 1)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    res = await session.execute(select(func.count(Share.id)).where(Share.project_id == project_id))
    return int(res.scalar_one() or 0)
