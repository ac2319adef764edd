"""Pytest configuration and fixtures for workbench tests."""
import os

# Test environment must be set before workbench modules read it
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_MIGRATE", "false")
os.environ.setdefault("REDIS_URL", "")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workbench import events
from workbench.database import create_engine_for_url, get_async_session
from workbench.main import app
from workbench.models import Base, Project, Agent, Rule, Hook, ResourceDependency
from workbench.services.unit_of_work import ProjectLocks
from workbench.utils import gen_id, now_ms

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_engine_for_url(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def locks():
    """A fresh lock registry so tests never share project locks."""
    return ProjectLocks()


@pytest_asyncio.fixture(scope="function")
async def client(test_engine):
    """Create test client with overridden database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_session

    # No Redis in tests
    events.redis_client = None

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ── seed helpers ──────────────────────────────────────────────────────────
# They return ids: a rolled-back unit of work expires every loaded instance.


async def make_project(session: AsyncSession, name: str = "Test Project", **fields) -> str:
    now = now_ms()
    project = Project(
        id=gen_id("proj_"),
        slug=fields.pop("slug", None) or gen_id("test-"),
        name=name,
        description=fields.pop("description", "A test project"),
        status=fields.pop("status", "active"),
        created_at=now,
        updated_at=now,
        **fields,
    )
    session.add(project)
    await session.commit()
    return project.id


async def make_agent(session: AsyncSession, name: str = "Agent", **fields) -> str:
    agent = Agent(
        id=fields.pop("id", None) or gen_id("agent_"),
        name=name,
        description=fields.pop("description", f"{name} description"),
        role=fields.pop("role", "Assistant"),
        system_prompt=fields.pop("system_prompt", "You are a helpful assistant."),
        **fields,
    )
    session.add(agent)
    await session.commit()
    return agent.id


async def make_rule(session: AsyncSession, name: str = "Rule", **fields) -> str:
    rule = Rule(
        id=fields.pop("id", None) or gen_id("rule_"),
        name=name,
        description=fields.pop("description", f"{name} description"),
        rule_text=fields.pop("rule_text", "Always write tests"),
        category=fields.pop("category", "guidelines"),
        **fields,
    )
    session.add(rule)
    await session.commit()
    return rule.id


async def make_hook(session: AsyncSession, name: str = "Hook", **fields) -> str:
    hook = Hook(
        id=fields.pop("id", None) or gen_id("hook_"),
        name=name,
        description=fields.pop("description", f"{name} description"),
        trigger_event=fields.pop("trigger_event", "on_file_save"),
        command=fields.pop("command", "echo saved"),
        **fields,
    )
    session.add(hook)
    await session.commit()
    return hook.id


async def make_dependency(
    session: AsyncSession,
    source: tuple[str, str],
    target: tuple[str, str],
    dependency_type: str = "requires",
    is_critical: bool = True,
) -> str:
    dep = ResourceDependency(
        id=gen_id("dep_"),
        source_resource_type=source[0],
        source_resource_id=source[1],
        target_resource_type=target[0],
        target_resource_id=target[1],
        dependency_type=dependency_type,
        is_critical=is_critical,
    )
    session.add(dep)
    await session.commit()
    return dep.id
