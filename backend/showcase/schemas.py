from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models speak camelCase; Python code uses snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# Users / auth
class AuthorRead(CamelModel):
    id: int
    username: str
    avatar_url: str | None = None


class UserRead(AuthorRead):
    bio: str | None = None
    role: str
    created_at: datetime


class RegisterRequest(CamelModel):
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return value.strip()


class LoginRequest(CamelModel):
    username: str
    password: str


class LoginResponse(CamelModel):
    token: str
    expires_at: str
    user: UserRead


class UserResponse(CamelModel):
    user: UserRead


class ProfileUpdate(CamelModel):
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=300)
    avatar_url: str | None = None


# Projects
class GalleryImageIn(CamelModel):
    image_url: str = Field(min_length=1)
    caption: str | None = None
    display_order: int | None = None


class GalleryImageRead(CamelModel):
    id: int
    image_url: str
    caption: str | None = None
    display_order: int


class ProjectRead(CamelModel):
    id: int
    title: str
    description: str
    long_description: str | None = None
    project_url: str
    image_url: str
    vibe_coding_tool: str | None = None
    author: AuthorRead
    tags: list[str] = []
    likes_count: int = 0
    comments_count: int = 0
    views_count: int = 0
    shares_count: int = 0
    is_liked: bool = False
    is_bookmarked: bool = False
    featured: bool = False
    is_private: bool = False
    gallery_images: list[GalleryImageRead] | None = None
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(CamelModel):
    projects: list[ProjectRead]
    has_more: bool
    total: int


class ProjectResponse(CamelModel):
    project: ProjectRead


class FeaturedProjectResponse(CamelModel):
    project: ProjectRead | None = None


class TrendingProjectsResponse(CamelModel):
    projects: list[ProjectRead]


class LikedProjectsResponse(CamelModel):
    projects: list[ProjectRead]


class ProjectCreate(CamelModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(default="", max_length=500)
    long_description: str | None = None
    project_url: HttpUrl
    image_url: str | None = None
    vibe_coding_tool: str | None = Field(default=None, max_length=64)
    is_private: bool = False
    tags: list[str] = []
    gallery_images: list[GalleryImageIn] = []

    @field_validator("description")
    @classmethod
    def check_description(cls, value: str) -> str:
        value = value.strip()
        # empty is allowed here: it may be filled from the project URL
        if value and len(value) < 20:
            raise ValueError("Description must be at least 20 characters")
        return value


class ProjectUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=20, max_length=500)
    long_description: str | None = None
    project_url: HttpUrl | None = None
    image_url: str | None = None
    vibe_coding_tool: str | None = Field(default=None, max_length=64)
    is_private: bool | None = None
    tags: list[str] | None = None
    gallery_images: list[GalleryImageIn] | None = None


class PrivacyUpdate(CamelModel):
    is_private: bool


class SuccessResponse(CamelModel):
    success: bool = True
    message: str | None = None


class ShareRequest(CamelModel):
    platform: str = Field(min_length=2, max_length=50)


class ShareResponse(CamelModel):
    success: bool = True
    shares_count: int


# Comments
class CommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=1000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Comment content cannot be empty")
        return value


class ReplyRead(CamelModel):
    id: int
    content: str
    author: AuthorRead
    likes_count: int = 0
    is_liked: bool = False
    is_author: bool = False
    created_at: datetime
    updated_at: datetime


class CommentRead(ReplyRead):
    replies: list[ReplyRead] = []


class CommentResponse(CamelModel):
    comment: CommentRead


class ReplyResponse(CamelModel):
    reply: ReplyRead


class CommentListResponse(CamelModel):
    comments: list[CommentRead]
    has_more: bool
    total_comments: int


# Tags / profiles
class TagsResponse(CamelModel):
    tags: list[str]


class CodingToolsResponse(CamelModel):
    tools: list[str]


class ProfileListResponse(CamelModel):
    profiles: list[UserRead]


class ProfileResponse(CamelModel):
    user: UserRead
    projects: list[ProjectRead]


# Notifications
class NotificationRead(CamelModel):
    id: int
    type: str
    actor: AuthorRead
    project_id: int | None = None
    comment_id: int | None = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: list[NotificationRead]
    total: int
    unread_count: int


class NotificationCountResponse(CamelModel):
    count: int
