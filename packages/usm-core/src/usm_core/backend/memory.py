from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from usm_kit.clock import now_utc

from usm_core.backend.base import ErrorCallback, IdentityProvider, RecordBackend, SnapshotCallback, Subscription
from usm_core.codec import is_server_timestamp
from usm_core.models import Document, Identity
from usm_core.sessions import InMemorySessionStore

logger = logging.getLogger(__name__)


class InMemoryBackend(RecordBackend):
    """Process-local stand-in for the hosted backend.

    Appends are delivered twice, the way the hosted SDK compensates latency:
    first with the server timestamp still pending, then again once the
    write commits and the timestamp is filled in.
    """

    def __init__(
        self,
        *,
        identities: IdentityProvider | None = None,
        clock: Callable[[], datetime] = now_utc,
        latency_compensation: bool = True,
    ) -> None:
        self._identities = identities or IdentityProvider(sessions=InMemorySessionStore(), signer=None)
        self._clock = clock
        self._latency_compensation = latency_compensation
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: dict[str, dict[int, tuple[SnapshotCallback, ErrorCallback]]] = {}
        self._listener_ids = itertools.count(1)

    async def current_identity(self) -> Identity | None:
        return await self._identities.current()

    async def sign_in_with_token(self, token: str) -> Identity:
        return await self._identities.sign_in_with_token(token)

    async def sign_in_anonymously(self) -> Identity:
        return await self._identities.sign_in_anonymously()

    async def sign_out(self) -> None:
        await self._identities.sign_out()

    def listener_count(self, collection_path: str) -> int:
        return len(self._listeners.get(collection_path, {}))

    def documents(self, collection_path: str) -> list[Document]:
        collection = self._collections.get(collection_path, {})
        return [Document(id=doc_id, data=dict(data)) for doc_id, data in collection.items()]

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        listener_id = next(self._listener_ids)
        self._listeners.setdefault(collection_path, {})[listener_id] = (on_snapshot, on_error)
        logger.debug(
            "listener_attached",
            extra={"component": "usm_core", "collection_path": collection_path, "listener_id": listener_id},
        )
        on_snapshot(self.documents(collection_path))

        def _release() -> None:
            self._listeners.get(collection_path, {}).pop(listener_id, None)

        return Subscription(_release)

    async def append(self, collection_path: str, document: dict[str, Any]) -> str:
        doc_id = uuid4().hex[:20]
        data = dict(document)
        pending = [key for key, value in data.items() if is_server_timestamp(value)]
        collection = self._collections.setdefault(collection_path, {})
        if self._latency_compensation and pending:
            for key in pending:
                data[key] = None
            collection[doc_id] = data
            self._broadcast(collection_path)
            await asyncio.sleep(0)
        for key in pending:
            data[key] = self._clock()
        collection[doc_id] = data
        self._broadcast(collection_path)
        return doc_id

    def put(self, collection_path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Writes a document as-is, as an external collaborator would."""
        self._collections.setdefault(collection_path, {})[doc_id] = dict(data)
        self._broadcast(collection_path)

    def revoke(self, collection_path: str, error: Exception) -> None:
        """Fails and detaches every listener on a path, as a permission change would."""
        listeners = self._listeners.pop(collection_path, {})
        for _, on_error in listeners.values():
            on_error(error)

    def _broadcast(self, collection_path: str) -> None:
        for on_snapshot, _ in list(self._listeners.get(collection_path, {}).values()):
            on_snapshot(self.documents(collection_path))


    async def close(self) -> None:
        self._listeners.clear()
        await self._identities.close()
