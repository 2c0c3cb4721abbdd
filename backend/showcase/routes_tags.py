from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import Project
from .schemas import CodingToolsResponse, TagsResponse
from .services.listing import parse_int_param
from .services.tags import get_all_tags, get_popular_tags

router = APIRouter(prefix="/api", tags=["tags"])

SessionDep = Depends(get_session)


@router.get("/tags", response_model=TagsResponse)
async def list_tags(session: AsyncSession = SessionDep):
    return TagsResponse(tags=await get_all_tags(session))


@router.get("/tags/popular", response_model=TagsResponse)
async def popular_tags(limit: str | None = Query(None), session: AsyncSession = SessionDep):
    return TagsResponse(tags=await get_popular_tags(session, parse_int_param(limit, 5, maximum=50)))


@router.get("/coding-tools", response_model=CodingToolsResponse)
async def coding_tools(session: AsyncSession = SessionDep):
    """Distinct tools that public projects were built with."""
    res = await session.execute(
        select(Project.vibe_coding_tool)
        .where(
            Project.vibe_coding_tool.is_not(None),
            Project.vibe_coding_tool != "",
            Project.is_private.is_(False),
        )
        .distinct()
        .order_by(Project.vibe_coding_tool)
    )
    return CodingToolsResponse(tools=list(res.scalars().all()))


@router.get("/coding-tools/popular", response_model=CodingToolsResponse)
async def popular_coding_tools(limit: str | None = Query(None), session: AsyncSession = SessionDep):
    """Tools ordered by how many public projects use them."""
    usage = func.count(Project.id).label("usage")
    res = await session.execute(
        select(Project.vibe_coding_tool, usage)
        .where(
            Project.vibe_coding_tool.is_not(None),
            Project.vibe_coding_tool != "",
            Project.is_private.is_(False),
        )
        .group_by(Project.vibe_coding_tool)
        .order_by(usage.desc(), Project.vibe_coding_tool)
        .limit(parse_int_param(limit, 10, maximum=50))
    )
    return CodingToolsResponse(tools=[tool for tool, _ in res.all()])
