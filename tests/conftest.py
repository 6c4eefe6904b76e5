"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from config.settings import Settings
from src.main import create_app


class FakeClock:
    """Injectable clock; tests move time with advance()."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def settings() -> Settings:
    return Settings(UNRESOLVED_BET_POLICY="BLOCK")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against a fresh app, so no state leaks between tests."""
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
