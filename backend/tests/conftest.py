import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("URL_METADATA_ENABLED", "false")

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from showcase import routes_auth
from showcase.db import Base, engine_options, get_session
from showcase.main import app
from showcase.models import Project, ProjectTag, User, UserRole
from showcase.services.notify import NotificationBus
from showcase.services.tags import get_or_create_tag


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool, **engine_options("sqlite"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
async def client(session_factory, bus):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.state.notification_bus = bus
    routes_auth._sessions.clear()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    routes_auth._sessions.clear()


class ApiUser:
    def __init__(self, id: int, username: str, token: str):
        self.id = id
        self.username = username
        self.token = token

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def register(client):
    async def _register(username: str, password: str = "secret123") -> ApiUser:
        r = await client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@example.com", "password": password},
        )
        assert r.status_code == 201, r.text
        r = await client.post("/api/auth/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        body = r.json()
        client.cookies.clear()
        return ApiUser(body["user"]["id"], username, body["token"])

    return _register


@pytest.fixture
def make_admin(session_factory):
    async def _make_admin(user: ApiUser) -> None:
        async with session_factory() as session:
            await session.execute(update(User).where(User.id == user.id).values(role=UserRole.admin.value))
            await session.commit()

    return _make_admin


@pytest.fixture
def seed_project(session_factory):
    """Insert a project directly, bypassing the API (for explicit timestamps)."""

    async def _seed(
        author_id: int,
        title: str = "Seeded project",
        *,
        tags: tuple[str, ...] = (),
        is_private: bool = False,
        featured: bool = False,
        views_count: int = 0,
        vibe_coding_tool: str | None = None,
        age: timedelta = timedelta(0),
    ) -> int:
        async with session_factory() as session:
            project = Project(
                title=title,
                description=f"{title} does something genuinely useful",
                project_url="https://example.com/",
                image_url="/images/default-project.jpg",
                author_id=author_id,
                is_private=is_private,
                featured=featured,
                views_count=views_count,
                vibe_coding_tool=vibe_coding_tool,
                created_at=datetime.now(timezone.utc) - age,
            )
            session.add(project)
            await session.flush()
            for name in tags:
                tag = await get_or_create_tag(session, name)
                session.add(ProjectTag(project_id=project.id, tag_id=tag.id))
            await session.commit()
            return project.id

    return _seed
