from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.db import get_session
from showcase.models import NotificationType, Project, User
from showcase.routes_auth import get_viewer_id, require_user
from showcase.schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    FeaturedProjectResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
    ShareRequest,
    ShareResponse,
    SuccessResponse,
    TrendingProjectsResponse,
)
from showcase.services import comments as comment_service
from showcase.services import engagement
from showcase.services import projects as project_service
from showcase.services.listing import (
    ListingFilters,
    Page,
    get_featured_project,
    get_project,
    get_project_model,
    get_trending_projects,
    list_projects,
    parse_int_param,
    parse_sort,
)
from showcase.services.notify import NotificationBus, excerpt, get_notification_bus, notify_user
from showcase.services.url_metadata import fetch_description
from showcase.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])

SessionDep = Depends(get_session)


def parse_id(raw: str, label: str = "project") -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if value < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} ID")
    return value


async def _load_or_404(session: AsyncSession, raw_id: str) -> Project:
    project = await get_project_model(session, parse_id(raw_id))
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


async def _load_visible_or_404(session: AsyncSession, raw_id: str, viewer_id: int) -> Project:
    project = await _load_or_404(session, raw_id)
    if project.is_private and project.author_id != viewer_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def _ensure_can_edit(project: Project, user: User) -> None:
    if not project_service.can_edit(project, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to modify this project")


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects_route(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    tag: str | None = Query(None),
    search: str | None = Query(None),
    sort: str | None = Query(None, description="trending (default), latest, popular, featured"),
    user: str | None = Query(None, description="Author username"),
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
):
    """List projects.

    ``page`` and ``limit`` are parsed leniently: anything that is not a
    positive integer falls back to the default.
    """
    settings = get_settings()
    pagination = Page(
        page=parse_int_param(page, 1),
        limit=parse_int_param(limit, settings.default_page_size, maximum=settings.max_page_size),
    )
    filters = ListingFilters(
        viewer_id=viewer_id,
        tag=(tag or "").strip() or None,
        search=(search or "").strip() or None,
        author_username=(user or "").strip() or None,
    )
    return await list_projects(session, filters, pagination, parse_sort(sort))


@router.get("/projects/featured", response_model=FeaturedProjectResponse)
async def featured_project(viewer_id: int = Depends(get_viewer_id), session: AsyncSession = SessionDep):
    return FeaturedProjectResponse(project=await get_featured_project(session, viewer_id))


@router.get("/projects/trending", response_model=TrendingProjectsResponse)
async def trending_projects(
    limit: str | None = Query(None),
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
):
    settings = get_settings()
    size = parse_int_param(limit, settings.trending_limit, maximum=settings.max_page_size)
    return TrendingProjectsResponse(projects=await get_trending_projects(session, size, viewer_id))


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project_route(
    project_id: str,
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
):
    project = await get_project(session, parse_id(project_id), viewer_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    await engagement.record_view(session, project.id)
    return ProjectResponse(project=project)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project_route(
    data: ProjectCreate,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    settings = get_settings()
    description = data.description
    if not description:
        fetched = await fetch_description(str(data.project_url))
        if fetched:
            description = fetched[:500]
            logger.info(f"[projects] description filled from {data.project_url}")
    if len(description) < 20:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Description must be at least 20 characters",
        )
    project = await project_service.create_project(
        session,
        user,
        data,
        description=description,
        image_url=data.image_url or settings.default_project_image,
    )
    return ProjectResponse(project=project)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project_route(
    project_id: str,
    data: ProjectUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    project = await _load_or_404(session, project_id)
    _ensure_can_edit(project, user)
    return ProjectResponse(project=await project_service.update_project(session, project, data, user.id))


@router.delete("/projects/{project_id}", response_model=SuccessResponse)
async def delete_project_route(
    project_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    project = await _load_or_404(session, project_id)
    _ensure_can_edit(project, user)
    await project_service.delete_project(session, project.id)
    return SuccessResponse()


@router.post("/projects/{project_id}/like", response_model=SuccessResponse)
async def like_project(
    project_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
    bus: NotificationBus = Depends(get_notification_bus),
):
    project = await _load_visible_or_404(session, project_id, user.id)
    created = await engagement.add_like(session, user.id, engagement.ProjectLike(project.id))
    if created:
        await notify_user(
            session,
            bus,
            recipient_id=project.author_id,
            actor=user,
            type=NotificationType.like_project,
            project={"id": project.id, "title": project.title},
        )
    return SuccessResponse()


@router.delete("/projects/{project_id}/like", response_model=SuccessResponse)
async def unlike_project(
    project_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    project = await _load_visible_or_404(session, project_id, user.id)
    await engagement.remove_like(session, user.id, engagement.ProjectLike(project.id))
    return SuccessResponse()


@router.post("/projects/{project_id}/bookmark", response_model=SuccessResponse)
async def bookmark_project(
    project_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    project = await _load_visible_or_404(session, project_id, user.id)
    await engagement.add_bookmark(session, user.id, project.id)
    return SuccessResponse()


@router.delete("/projects/{project_id}/bookmark", response_model=SuccessResponse)
async def unbookmark_project(
    project_id: str,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    project = await _load_visible_or_404(session, project_id, user.id)
    await engagement.remove_bookmark(session, user.id, project.id)
    return SuccessResponse()


@router.post("/projects/{project_id}/share", response_model=ShareResponse)
async def share_project(
    project_id: str,
    data: ShareRequest,
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
):
    project = await _load_visible_or_404(session, project_id, viewer_id)
    shares_count = await engagement.share_project(session, project.id, data.platform, viewer_id or None)
    return ShareResponse(shares_count=shares_count)


@router.get("/projects/{project_id}/comments", response_model=CommentListResponse)
async def list_project_comments(
    project_id: str,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    sort: str | None = Query(None, description="newest (default), oldest, mostLiked"),
    viewer_id: int = Depends(get_viewer_id),
    session: AsyncSession = SessionDep,
):
    settings = get_settings()
    project = await _load_visible_or_404(session, project_id, viewer_id)
    pagination = Page(
        page=parse_int_param(page, 1),
        limit=parse_int_param(limit, settings.comments_page_size, maximum=settings.max_page_size),
    )
    return await comment_service.list_comments(
        session, project, pagination, comment_service.parse_comment_sort(sort), viewer_id
    )


@router.post("/projects/{project_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_project_comment(
    project_id: str,
    data: CommentCreate,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
    bus: NotificationBus = Depends(get_notification_bus),
):
    project = await _load_visible_or_404(session, project_id, user.id)
    comment = await comment_service.create_comment(session, project, user, data.content)
    await notify_user(
        session,
        bus,
        recipient_id=project.author_id,
        actor=user,
        type=NotificationType.comment_project,
        project={"id": project.id, "title": project.title},
        comment={"id": comment.id, "content": excerpt(data.content)},
    )
    return CommentResponse(comment=comment)
