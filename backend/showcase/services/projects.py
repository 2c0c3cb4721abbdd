from __future__ import annotations

import logging

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.models import (
    Bookmark,
    Comment,
    CommentReply,
    Like,
    Notification,
    Project,
    ProjectGalleryImage,
    ProjectTag,
    ProjectView,
    Share,
    User,
)
from showcase.schemas import ProjectCreate, ProjectRead, ProjectUpdate
from showcase.services.enrichment import enrich_projects
from showcase.services.gallery import gallery_for_project, set_gallery_images
from showcase.services.listing import get_project_model
from showcase.services.tags import set_project_tags

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "long_description",
    "project_url",
    "image_url",
    "vibe_coding_tool",
    "is_private",
)

# columns a PATCH may clear with an explicit null
NULLABLE_FIELDS = frozenset({"long_description", "vibe_coding_tool"})


def can_edit(project: Project, user: User) -> bool:
    return project.author_id == user.id or user.is_admin


async def _read_with_gallery(session: AsyncSession, project_id: int, viewer_id: int) -> ProjectRead:
    project = await get_project_model(session, project_id)
    read = (await enrich_projects(session, [project], viewer_id))[0]
    return read.model_copy(update={"gallery_images": await gallery_for_project(session, project_id)})


async def create_project(
    session: AsyncSession,
    author: User,
    data: ProjectCreate,
    *,
    description: str,
    image_url: str,
) -> ProjectRead:
    """Insert a project with its tags and gallery images in one transaction.

    New projects are never featured; only admins feature projects.
    """
    project = Project(
        title=data.title.strip(),
        description=description,
        long_description=data.long_description,
        project_url=str(data.project_url),
        image_url=image_url,
        vibe_coding_tool=data.vibe_coding_tool,
        author_id=author.id,
        is_private=data.is_private,
        featured=False,
    )
    try:
        session.add(project)
        await session.flush()
        await set_project_tags(session, project.id, data.tags)
        await set_gallery_images(session, project.id, data.gallery_images)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(f"[projects] created project {project.id} by user {author.id}")
    return await _read_with_gallery(session, project.id, author.id)


async def update_project(session: AsyncSession, project: Project, data: ProjectUpdate, viewer_id: int) -> ProjectRead:
    fields = data.model_dump(exclude_unset=True)
    try:
        for field in UPDATABLE_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if value is None and field not in NULLABLE_FIELDS:
                continue
            if field == "project_url":
                value = str(value)
            setattr(project, field, value)
        session.add(project)
        if data.tags is not None:
            await set_project_tags(session, project.id, data.tags, replace=True)
        if data.gallery_images is not None:
            await set_gallery_images(session, project.id, data.gallery_images, replace=True)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    return await _read_with_gallery(session, project.id, viewer_id)


async def delete_project(session: AsyncSession, project_id: int) -> None:
    """Remove a project and everything hanging off it in one transaction."""
    comment_ids = select(Comment.id).where(Comment.project_id == project_id)
    reply_ids = select(CommentReply.id).where(CommentReply.comment_id.in_(comment_ids))
    try:
        await session.execute(
            delete(Like).where(
                or_(
                    Like.project_id == project_id,
                    Like.comment_id.in_(comment_ids),
                    Like.reply_id.in_(reply_ids),
                )
            )
        )
        await session.execute(delete(Notification).where(Notification.project_id == project_id))
        await session.execute(delete(CommentReply).where(CommentReply.comment_id.in_(comment_ids)))
        await session.execute(delete(Comment).where(Comment.project_id == project_id))
        await session.execute(delete(Bookmark).where(Bookmark.project_id == project_id))
        await session.execute(delete(ProjectView).where(ProjectView.project_id == project_id))
        await session.execute(delete(Share).where(Share.project_id == project_id))
        await session.execute(delete(ProjectTag).where(ProjectTag.project_id == project_id))
        await session.execute(delete(ProjectGalleryImage).where(ProjectGalleryImage.project_id == project_id))
        await session.execute(delete(Project).where(Project.id == project_id))
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info(f"[projects] deleted project {project_id}")


async def feature_project(session: AsyncSession, project_id: int) -> None:
    """Make ``project_id`` the only featured project."""
    try:
        await session.execute(
            update(Project)
            .where(Project.featured.is_(True))
            .values(featured=False)
            .execution_options(synchronize_session=False)
        )
        await session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(featured=True)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info(f"[projects] featured project {project_id}")


async def set_privacy(session: AsyncSession, project: Project, is_private: bool) -> None:
    project.is_private = is_private
    session.add(project)
    await session.commit()
