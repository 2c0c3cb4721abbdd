"""
Project gallery images.

A project carries an ordered list of extra screenshots next to its cover
image. Images without an explicit ``display_order`` take their position in
the submitted list.
"""
from __future__ import annotations

from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from showcase.models import ProjectGalleryImage
from showcase.schemas import GalleryImageIn, GalleryImageRead


async def set_gallery_images(
    session: AsyncSession,
    project_id: int,
    images: Sequence[GalleryImageIn],
    *,
    replace: bool = False,
) -> None:
    """Attach gallery images inside the caller's transaction."""
    if replace:
        await session.execute(delete(ProjectGalleryImage).where(ProjectGalleryImage.project_id == project_id))
    for position, image in enumerate(images):
        session.add(
            ProjectGalleryImage(
                project_id=project_id,
                image_url=image.image_url.strip(),
                caption=image.caption,
                display_order=position if image.display_order is None else image.display_order,
            )
        )
    await session.flush()


async def gallery_for_project(session: AsyncSession, project_id: int) -> list[GalleryImageRead]:
    res = await session.execute(
        select(ProjectGalleryImage)
        .where(ProjectGalleryImage.project_id == project_id)
        .order_by(ProjectGalleryImage.display_order, ProjectGalleryImage.id)
    )
    return [GalleryImageRead.model_validate(image) for image in res.scalars().all()]
