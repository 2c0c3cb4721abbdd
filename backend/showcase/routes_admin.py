from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import User
from .routes_auth import require_admin, require_user
from .routes_projects import parse_id
from .schemas import PrivacyUpdate, SuccessResponse
from .services import projects as project_service
from .services.listing import get_project_model

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

SessionDep = Depends(get_session)


@router.put("/projects/{project_id}/feature", response_model=SuccessResponse)
async def feature_project(
    project_id: str,
    admin: User = Depends(require_admin),
    session: AsyncSession = SessionDep,
):
    """Make this the single featured project."""
    project = await get_project_model(session, parse_id(project_id))
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    await project_service.feature_project(session, project.id)
    logger.info(f"[admin] user {admin.id} featured project {project.id}")
    return SuccessResponse(message="Project featured")


@router.put("/projects/{project_id}/privacy", response_model=SuccessResponse)
async def set_project_privacy(
    project_id: str,
    data: PrivacyUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = SessionDep,
):
    project = await get_project_model(session, parse_id(project_id))
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    if not project_service.can_edit(project, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to modify this project")
    await project_service.set_privacy(session, project, data.is_private)
    return SuccessResponse()
