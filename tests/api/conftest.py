"""API-specific test fixtures."""

import json
from contextlib import asynccontextmanager

import pytest
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from deepform.agent.generator_fake import GeneratorFake
from deepform.core.auth import ClerkUser, require_auth
from deepform.core.exceptions import PipelineBusyError

OWNER_ID = "user_owner"
OTHER_USER_ID = "user_intruder"
SSE_ACCEPT = {"Accept": "text/event-stream"}


def as_user(user_id: str):
    """Dependency override that authenticates every request as ``user_id``."""

    async def _override():
        return ClerkUser(user_id=user_id, claims={"sub": user_id})

    return _override


def _parse_sse(text: str) -> list[tuple[str, dict]]:
    """Split an SSE body into (event name, JSON data) pairs; unnamed events are 'message'."""
    events = []
    for block in text.strip().split("\n\n"):
        if not block.strip():
            continue
        name = "message"
        data = ""
        for line in block.split("\n"):
            if line.startswith("event: "):
                name = line[len("event: "):]
            elif line.startswith("data: "):
                data += line[len("data: "):]
        events.append((name, json.loads(data)))
    return events


@pytest.fixture
def parse_sse():
    return _parse_sse


@pytest.fixture
def fake_redis():
    return FakeAsyncRedis(decode_responses=True)


@pytest.fixture
def api_client(test_db_url, generator_fake, fake_redis):
    """FastAPI test client with a SQLite database, fake generator and fake Redis.

    Initializes the global database via init_db inside the TestClient's own
    event loop so route handlers can use get_session_factory(). Requests are
    authenticated as OWNER_ID; swap ``client.app.dependency_overrides`` to act
    as someone else or to change the generator scenario.
    """
    from fastapi.middleware.cors import CORSMiddleware

    from deepform.api.deps import get_funnel, get_generator
    from deepform.api.routes import api_router
    from deepform.core.config import get_settings
    from deepform.db import close_db, init_db
    from deepform.main import (
        generic_exception_handler,
        http_exception_handler,
        pipeline_busy_handler,
        validation_exception_handler,
    )
    from deepform.services.funnel import FunnelTracker

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB in TestClient's event loop."""
        # Reset global so init_db creates a fresh engine in THIS loop
        import deepform.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(test_db_url)
        yield
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="DeepForm - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(PipelineBusyError)(pipeline_busy_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[require_auth] = as_user(OWNER_ID)
    app.dependency_overrides[get_generator] = lambda: generator_fake
    app.dependency_overrides[get_funnel] = lambda: FunnelTracker(fake_redis)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def use_generator(api_client):
    """Swap the generator used by subsequent requests; returns the new fake."""
    from deepform.api.deps import get_generator

    def _use(scenario: str = "happy_path", fail_on: set[str] | None = None) -> GeneratorFake:
        fake = GeneratorFake(scenario=scenario, fail_on=fail_on)
        api_client.app.dependency_overrides[get_generator] = lambda: fake
        return fake

    return _use


@pytest.fixture
def act_as(api_client):
    """Authenticate subsequent requests as another user."""

    def _act(user_id: str) -> None:
        api_client.app.dependency_overrides[require_auth] = as_user(user_id)

    return _act


@pytest.fixture
def create_session(api_client):
    """Create a session as the owner and return its id."""

    def _create(theme: str = "Freelance invoicing") -> str:
        response = api_client.post("/api/sessions", json={"theme": theme})
        assert response.status_code == 200, response.text
        return response.json()["sessionId"]

    return _create
