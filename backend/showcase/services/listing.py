"""
Project discovery: filtering, ranking and pagination.

A listing request is narrowed by a set of SQL predicates (visibility, tag,
search, author, featured). The same predicate set drives both the page query
and the total count. Filters that name something that does not exist (an
unknown tag or username) short-circuit to an empty page.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from showcase.models import Like, Project, ProjectTag, User
from showcase.schemas import ProjectListResponse, ProjectRead
from showcase.services.enrichment import enrich_projects
from showcase.services.gallery import gallery_for_project
from showcase.services.tags import find_tag
from showcase.services.trending import monthly_views_subquery, rank_trending

logger = logging.getLogger(__name__)


class SortMode(str, Enum):
    trending = "trending"
    latest = "latest"
    popular = "popular"
    featured = "featured"


def parse_sort(value: str | None) -> SortMode:
    """Unknown or missing sort values fall back to trending."""
    try:
        return SortMode((value or "").strip().lower())
    except ValueError:
        return SortMode.trending


def parse_int_param(value: Any, default: int, *, maximum: int | None = None) -> int:
    """Lenient integer parsing for query strings.

    Non-numeric and non-positive values yield ``default`` instead of an error;
    clients have always been allowed to send junk here.
    """
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    if parsed < 1:
        return default
    if maximum is not None:
        parsed = min(parsed, maximum)
    return parsed


@dataclass(frozen=True)
class Page:
    page: int = 1
    limit: int = 6

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def has_more(self, returned: int, total: int) -> bool:
        return self.offset + returned < total


@dataclass
class ListingFilters:
    viewer_id: int = 0
    tag: str | None = None
    search: str | None = None
    author_username: str | None = None
    featured_only: bool = False


def visibility_clause(viewer_id: int) -> ColumnElement[bool]:
    """Public projects, plus the viewer's own private ones."""
    if viewer_id > 0:
        return or_(Project.is_private.is_(False), Project.author_id == viewer_id)
    return Project.is_private.is_(False)


async def resolve_filters(session: AsyncSession, filters: ListingFilters) -> list[ColumnElement[bool]] | None:
    """Turn listing filters into SQL predicates.

    Returns ``None`` when a filter target does not resolve, meaning the
    result is empty without querying projects at all.
    """
    conditions: list[ColumnElement[bool]] = [visibility_clause(filters.viewer_id)]

    if filters.author_username:
        res = await session.execute(select(User.id).where(User.username == filters.author_username))
        author_id = res.scalar_one_or_none()
        if author_id is None:
            return None
        conditions.append(Project.author_id == author_id)

    if filters.tag:
        tag = await find_tag(session, filters.tag)
        if tag is None:
            return None
        conditions.append(
            Project.id.in_(select(ProjectTag.project_id).where(ProjectTag.tag_id == tag.id))
        )

    if filters.search:
        pattern = f"%{filters.search}%"
        conditions.append(or_(Project.title.ilike(pattern), Project.description.ilike(pattern)))

    if filters.featured_only:
        conditions.append(Project.featured.is_(True))

    return conditions


async def resolve_author_ids(
    session: AsyncSession,
    *,
    tag: str | None = None,
    tool: str | None = None,
) -> set[int] | None:
    """Authors matching a tag and/or a coding tool.

    Each filter yields its own author set; with both present the sets are
    intersected. ``None`` means no filter was given. Only public projects
    count towards membership.
    """
    sets: list[set[int]] = []
    if tag:
        found = await find_tag(session, tag)
        if found is None:
            return set()
        res = await session.execute(
            select(Project.author_id)
            .join(ProjectTag, ProjectTag.project_id == Project.id)
            .where(ProjectTag.tag_id == found.id, Project.is_private.is_(False))
            .distinct()
        )
        sets.append(set(res.scalars().all()))
    if tool:
        res = await session.execute(
            select(Project.author_id)
            .where(func.lower(Project.vibe_coding_tool) == tool.strip().lower(), Project.is_private.is_(False))
            .distinct()
        )
        sets.append(set(res.scalars().all()))
    if not sets:
        return None
    return set.intersection(*sets)


async def _count(session: AsyncSession, conditions: Sequence[ColumnElement[bool]]) -> int:
    res = await session.execute(select(func.count(Project.id)).where(and_(*conditions)))
    return int(res.scalar_one() or 0)


async def _load_projects(session: AsyncSession, ids: Sequence[int]) -> list[Project]:
    """Fetch projects with authors, in the order of ``ids``."""
    if not ids:
        return []
    res = await session.execute(
        select(Project).options(selectinload(Project.author)).where(Project.id.in_(ids))
    )
    by_id = {p.id: p for p in res.scalars().all()}
    return [by_id[i] for i in ids if i in by_id]


async def _trending_page(
    session: AsyncSession,
    conditions: Sequence[ColumnElement[bool]],
    page: Page,
    now: datetime,
) -> list[Project]:
    # rank the whole candidate set, then cut the page
    monthly = monthly_views_subquery(now)
    res = await session.execute(
        select(
            Project.id,
            Project.created_at,
            func.coalesce(monthly.c.views_count, 0).label("monthly_views"),
        )
        .outerjoin(monthly, monthly.c.project_id == Project.id)
        .where(and_(*conditions))
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    candidates = res.all()
    ranked = rank_trending(
        candidates,
        {row.id: row.monthly_views for row in candidates},
        id_of=lambda row: row.id,
        created_of=lambda row: row.created_at,
        now=now,
    )
    ids = [row.id for row in ranked[page.offset : page.offset + page.limit]]
    return await _load_projects(session, ids)


async def list_projects(
    session: AsyncSession,
    filters: ListingFilters,
    page: Page,
    sort: SortMode = SortMode.trending,
    *,
    now: datetime | None = None,
) -> ProjectListResponse:
    now = now or datetime.now(timezone.utc)
    if sort is SortMode.featured:
        filters.featured_only = True

    conditions = await resolve_filters(session, filters)
    if conditions is None:
        return ProjectListResponse(projects=[], has_more=False, total=0)

    total = await _count(session, conditions)
    if total == 0 or page.offset >= total:
        return ProjectListResponse(projects=[], has_more=False, total=total)

    if sort is SortMode.trending:
        rows = await _trending_page(session, conditions, page, now)
    else:
        if sort is SortMode.popular:
            order_by = (Project.views_count.desc(), Project.created_at.desc(), Project.id.desc())
        else:
            order_by = (Project.created_at.desc(), Project.id.desc())
        res = await session.execute(
            select(Project)
            .options(selectinload(Project.author))
            .where(and_(*conditions))
            .order_by(*order_by)
            .limit(page.limit)
            .offset(page.offset)
        )
        rows = list(res.scalars().all())

    projects = await enrich_projects(session, rows, filters.viewer_id)
    logger.debug(
        "[listing] sort=%s page=%s limit=%s returned=%s total=%s",
        sort.value, page.page, page.limit, len(projects), total,
    )
    return ProjectListResponse(
        projects=projects,
        has_more=page.has_more(len(projects), total),
        total=total,
    )


async def get_featured_project(session: AsyncSession, viewer_id: int = 0) -> ProjectRead | None:
    res = await session.execute(
        select(Project)
        .options(selectinload(Project.author))
        .where(Project.featured.is_(True), visibility_clause(viewer_id))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .limit(1)
    )
    project = res.scalars().first()
    if project is None:
        return None
    enriched = await enrich_projects(session, [project], viewer_id)
    return enriched[0]


async def get_trending_projects(
    session: AsyncSession,
    limit: int,
    viewer_id: int = 0,
    *,
    now: datetime | None = None,
) -> list[ProjectRead]:
    now = now or datetime.now(timezone.utc)
    rows = await _trending_page(session, [visibility_clause(viewer_id)], Page(page=1, limit=limit), now)
    return await enrich_projects(session, rows, viewer_id)


async def get_project_model(session: AsyncSession, project_id: int) -> Project | None:
    """Point lookup with author loaded; no visibility filtering."""
    res = await session.execute(
        select(Project)
        .options(selectinload(Project.author))
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    return res.scalars().first()


async def get_project(session: AsyncSession, project_id: int, viewer_id: int = 0) -> ProjectRead | None:
    """Single project as seen by ``viewer_id``.

    Private projects of other authors are reported as missing.
    """
    project = await get_project_model(session, project_id)
    if project is None:
        return None
    if project.is_private and project.author_id != viewer_id:
        return None
    enriched = await enrich_projects(session, [project], viewer_id)
    return enriched[0].model_copy(update={"gallery_images": await gallery_for_project(session, project.id)})


async def get_liked_projects(session: AsyncSession, user_id: int, viewer_id: int = 0) -> list[ProjectRead]:
    """Projects ``user_id`` has liked, most recent like first.

    Visibility is applied for ``viewer_id``; a liked project that has since
    gone private drops out for everyone but its author.
    """
    res = await session.execute(
        select(Project.id)
        .join(Like, Like.project_id == Project.id)
        .where(Like.user_id == user_id, visibility_clause(viewer_id))
        .order_by(Like.created_at.desc(), Like.id.desc())
    )
    rows = await _load_projects(session, list(res.scalars().all()))
    return await enrich_projects(session, rows, viewer_id)
