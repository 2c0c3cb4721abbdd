"""
Tag naming and lookup.

Tags are identified case-insensitively. A fixed table of well-known tags gives
them their display casing; anything else keeps the casing it was first
submitted with.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.models import ProjectTag, Tag

PREDEFINED_TAGS = (
    "AI Tools",
    "Analytics",
    "Art",
    "Business",
    "Chatbots",
    "Code",
    "Creative",
    "Data Visualization",
    "Development",
    "Education",
    "GPT Models",
    "Image Generation",
    "Machine Learning",
    "Natural Language Processing",
    "Productivity",
    "Tools",
    "Collaboration",
    "Content Creation",
    "Developer Tools",
    "Finance",
    "Gaming",
    "Health",
    "Lifestyle",
    "Social",
    "Utilities",
    "Web Development",
    "Mobile",
    "Design",
    "Communication",
)

_CANONICAL_TAGS = {name.lower(): name for name in PREDEFINED_TAGS}


def proper_case_tag(name: str) -> str:
    """Return the display casing for a known tag, or the name unchanged."""
    return _CANONICAL_TAGS.get(name.lower(), name)


def normalize_tag_names(names: Iterable[str]) -> list[str]:
    """Trim, drop empties, apply display casing and dedupe case-insensitively."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in names:
        name = (raw or "").strip()
        if not name:
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(proper_case_tag(name))
    return result


async def find_tag(session: AsyncSession, name: str) -> Tag | None:
    res = await session.execute(select(Tag).where(func.lower(Tag.name) == name.strip().lower()))
    return res.scalars().first()


async def get_or_create_tag(session: AsyncSession, name: str) -> Tag:
    tag = await find_tag(session, name)
    if tag is None:
        tag = Tag(name=proper_case_tag(name))
        session.add(tag)
        await session.flush()
    return tag


async def set_project_tags(
    session: AsyncSession,
    project_id: int,
    names: Iterable[str],
    *,
    replace: bool = False,
) -> list[str]:
    """Attach tags to a project inside the caller's transaction.

    With ``replace`` the existing links are dropped first. Returns the
    normalized names in submission order.
    """
    if replace:
        await session.execute(delete(ProjectTag).where(ProjectTag.project_id == project_id))
    normalized = normalize_tag_names(names)
    for name in normalized:
        tag = await get_or_create_tag(session, name)
        session.add(ProjectTag(project_id=project_id, tag_id=tag.id))
    await session.flush()
    return normalized


async def tags_for_projects(session: AsyncSession, project_ids: Sequence[int]) -> dict[int, list[str]]:
    """Display-cased tag names per project, in attachment order."""
    result: dict[int, list[str]] = {pid: [] for pid in project_ids}
    if not project_ids:
        return result
    res = await session.execute(
        select(ProjectTag.project_id, Tag.name)
        .join(Tag, Tag.id == ProjectTag.tag_id)
        .where(ProjectTag.project_id.in_(project_ids))
        .order_by(ProjectTag.id)
    )
    for project_id, name in res.all():
        result[project_id].append(proper_case_tag(name))
    return result


async def get_all_tags(session: AsyncSession) -> list[str]:
    res = await session.execute(select(Tag.name).order_by(Tag.name))
    return [proper_case_tag(name) for name in res.scalars().all()]


async def get_popular_tags(session: AsyncSession, limit: int = 5) -> list[str]:
    usage = func.count(ProjectTag.id).label("usage")
    res = await session.execute(
        select(Tag.name, usage)
        .join(ProjectTag, ProjectTag.tag_id == Tag.id)
        .group_by(Tag.id, Tag.name)
        .order_by(usage.desc(), Tag.name)
        .limit(limit)
    )
    return [proper_case_tag(name) for name, _ in res.all()]
