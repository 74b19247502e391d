from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from usm_core.backend.base import RecordBackend
from usm_core.models import Identity
from usm_core.notifications import Notifier

logger = logging.getLogger(__name__)

SIGN_IN_FAILED_MESSAGE = "Failed to connect to the demo service."
SIGN_OUT_FAILED_MESSAGE = "Failed to end the demo session cleanly."

SessionListener = Callable[[], Awaitable[None]]


class SessionBootstrap:
    """Establishes the session identity before any data operation runs.

    ``ready`` flips to True exactly once, after the first sign-in attempt
    finishes, whether or not it produced an identity.
    """

    def __init__(
        self,
        backend: RecordBackend,
        notifier: Notifier,
        *,
        initial_token: str | None = None,
    ) -> None:
        self._backend = backend
        self._notifier = notifier
        self._initial_token = initial_token
        self._ready = False
        self._identity: Identity | None = None
        self._listeners: list[SessionListener] = []
        self._lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def identity(self) -> Identity | None:
        return self._identity

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> Identity | None:
        async with self._lock:
            if self._identity is None:
                self._identity = await self._establish()
            self._ready = True
        await self._notify_listeners()
        return self._identity

    async def end_session(self) -> None:
        async with self._lock:
            if self._identity is None:
                return
            logger.info("session_ended", extra={"component": "usm_core", "uid": self._identity.uid})
            self._identity = None
            try:
                await self._backend.sign_out()
            except Exception:
                logger.exception("sign_out_failed", extra={"component": "usm_core"})
                self._notifier.error(SIGN_OUT_FAILED_MESSAGE)
        await self._notify_listeners()

    async def _establish(self) -> Identity | None:
        try:
            existing = await self._backend.current_identity()
            if existing is not None:
                logger.info("session_resumed", extra={"component": "usm_core", "uid": existing.uid})
                return existing
            if self._initial_token:
                return await self._backend.sign_in_with_token(self._initial_token)
            return await self._backend.sign_in_anonymously()
        except Exception:
            logger.exception("sign_in_failed", extra={"component": "usm_core"})
            self._notifier.error(SIGN_IN_FAILED_MESSAGE)
            return None

    async def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            await listener()
