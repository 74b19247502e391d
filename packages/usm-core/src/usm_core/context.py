from __future__ import annotations

import logging

from usm_kit.config import ServiceSettings
from usm_kit.redis import create_redis_client

from usm_core.backend.base import IdentityProvider, RecordBackend
from usm_core.backend.memory import InMemoryBackend
from usm_core.bootstrap import SessionBootstrap
from usm_core.notifications import Notifier
from usm_core.sessions import InMemorySessionStore, RedisSessionStore, SessionStore
from usm_core.store import LiveRecordStore
from usm_core.tokens import SessionTokenSigner

logger = logging.getLogger(__name__)


def build_session_store(settings: ServiceSettings) -> SessionStore:
    client = create_redis_client(settings.REDIS_URL)
    if client is None:
        return InMemorySessionStore()
    return RedisSessionStore(client)


def build_backend(settings: ServiceSettings) -> RecordBackend:
    identities = IdentityProvider(
        sessions=build_session_store(settings),
        signer=SessionTokenSigner(settings.AUTH_TOKEN_SECRET),
        session_key=settings.SESSION_KEY,
    )
    if settings.DATABASE_URL:
        from usm_core.backend.sql import SqlRecordBackend

        return SqlRecordBackend(
            settings.DATABASE_URL,
            identities=identities,
            poll_interval_seconds=settings.SNAPSHOT_POLL_SECONDS,
        )
    return InMemoryBackend(identities=identities)


class AppContext:
    """Owns the backend client, the current session and the live store for one process."""

    def __init__(
        self,
        *,
        settings: ServiceSettings,
        backend: RecordBackend,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.session = SessionBootstrap(backend, self.notifier, initial_token=settings.INITIAL_AUTH_TOKEN)
        self.store = LiveRecordStore(
            backend,
            self.session,
            self.notifier,
            collection_path=settings.collection_path,
        )
        self._started = False

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> AppContext:
        return cls(settings=settings, backend=build_backend(settings))

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        logger.info(
            "context_starting",
            extra={"component": "usm_core", "collection_path": self.settings.collection_path},
        )
        await self.session.start()

    async def close(self) -> None:
        if not self._started:
            return
        self._started = False
        await self.store.close()
        await self.backend.close()
        logger.info("context_closed", extra={"component": "usm_core"})

    async def __aenter__(self) -> AppContext:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
