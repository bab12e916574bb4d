"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient

# Keep the mirror out of the working tree and the workers idle under test
os.environ.setdefault("MIRROR_ENABLED", "false")
os.environ.setdefault("FEEDS_AUTO_START", "false")

from vonatinfo_api.main import app  # noqa: E402
from vonatinfo_api.services.feeds.worker import reset_workers  # noqa: E402
from vonatinfo_api.services.roster.pipeline import (  # noqa: E402
    RosterPipeline,
    get_pipeline,
    reset_pipeline,
)


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Give every test a fresh pipeline and worker set."""
    reset_pipeline()
    reset_workers()
    yield
    reset_workers()
    reset_pipeline()


@pytest.fixture
def pipeline() -> RosterPipeline:
    """The application's pipeline singleton."""
    return get_pipeline()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
