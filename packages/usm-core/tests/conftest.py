from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

COLLECTION = "/artifacts/test-app/public/data/universal_vms"


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def collection_path() -> str:
    return COLLECTION
