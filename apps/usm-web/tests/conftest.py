from __future__ import annotations

import time
from collections.abc import Callable

import pytest

from usm_kit.config import ServiceSettings

from usm_core.backend.base import RecordBackend
from usm_core.backend.memory import InMemoryBackend
from usm_core.context import AppContext


@pytest.fixture
def settings() -> ServiceSettings:
    return ServiceSettings(SERVICE_NAME="usm-web-test", APP_ID="test-app", DATABASE_URL=None, REDIS_URL=None)


@pytest.fixture
def make_context(settings: ServiceSettings) -> Callable[..., AppContext]:
    def _make(backend: RecordBackend | None = None) -> AppContext:
        return AppContext(settings=settings, backend=backend or InMemoryBackend())

    return _make


@pytest.fixture
def eventually() -> Callable[[Callable[[], bool]], None]:
    def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("condition not met before timeout")
            time.sleep(0.01)

    return _wait
