"""Shared test fixtures for all test groups."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from deepform.agent.generator_fake import GeneratorFake
from deepform.db.base import Base


@pytest.fixture
def generator_fake():
    """Fresh GeneratorFake with happy_path scenario (default)."""
    return GeneratorFake(scenario="happy_path")


@pytest.fixture
def generator_fake_failing():
    """GeneratorFake with llm_failure scenario."""
    return GeneratorFake(scenario="llm_failure")


@pytest.fixture
def generator_fake_malformed():
    """GeneratorFake whose stage replies contain no JSON."""
    return GeneratorFake(scenario="malformed")


@pytest.fixture
def test_db_url(tmp_path) -> str:
    """File-backed SQLite database, so engines in different event loops share it."""
    return f"sqlite+aiosqlite:///{tmp_path / 'deepform_test.db'}"


@pytest.fixture
async def engine(test_db_url) -> AsyncEngine:
    """Create a SQLite test engine with all tables."""
    engine = create_async_engine(test_db_url, echo=False)

    # Import all models so metadata is populated
    import deepform.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session
