from typing import Any, Callable, Iterator

from unittest.mock import MagicMock, patch
import pytest

from restcache.config import Settings


# Configure anyio to only use asyncio backend
@pytest.fixture
def anyio_backend() -> str:
    """Force tests to use asyncio backend only."""
    return "asyncio"


@pytest.fixture(autouse=True, scope="session")
def mock_logger() -> Iterator[MagicMock]:
    with patch("restcache.logging._logger", MagicMock()) as mock_logger:
        mock_logger.log.return_value = None
        yield mock_logger


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_800_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_settings(monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """Build settings isolated from the developer's environment and .env file."""
    for name in (
        "REST_API_CACHE_DISABLE",
        "REST_API_CACHE_DEFAULT_TIMEOUT",
        "REST_API_CACHE_STORE",
        "REST_API_CACHE_REDIS_URL",
        "REST_API_CACHE_PREFIX",
        "REST_API_CACHE_METHODS",
    ):
        monkeypatch.delenv(name, raising=False)

    def _make(**overrides: Any) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()
