from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from usm_core.backend.base import RecordBackend, Subscription
from usm_core.bootstrap import SessionBootstrap
from usm_core.codec import decode_documents, encode_asset_registration, encode_service_request
from usm_core.models import AssetRegistrationFields, Document, Identity, ServiceRequestFields
from usm_core.notifications import Notifier
from usm_core.views import RecordViews, partition_records

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "System not ready. Please wait for authentication."
LOAD_FAILED_MESSAGE = "Error loading VMS data."
REQUEST_SUBMITTED_MESSAGE = "Your service request has been submitted successfully!"
REQUEST_FAILED_MESSAGE = "Failed to submit service request. Please try again."
ASSET_REGISTERED_MESSAGE = "Asset registered successfully!"
ASSET_FAILED_MESSAGE = "Failed to register asset. Please try again."

_SNAPSHOT = "snapshot"
_ERROR = "error"


@dataclass(frozen=True)
class SubmitResult:
    ok: bool
    message: str
    record_id: str | None = None
    code: str | None = None


class LiveRecordStore:
    """Live, partitioned view of the shared collection plus the two append operations.

    The subscription opens only once the session is ready and holds an
    identity, and it is torn down as soon as the identity goes away. Backend
    callbacks may fire on any thread; they are funnelled into one queue per
    subscription and applied in order by a single consumer task, so each push
    is fully recomputed before the next one is looked at.
    """

    def __init__(
        self,
        backend: RecordBackend,
        session: SessionBootstrap,
        notifier: Notifier,
        *,
        collection_path: str,
        watcher_backlog: int = 32,
    ) -> None:
        self._backend = backend
        self._session = session
        self._notifier = notifier
        self._collection_path = collection_path
        self._views = RecordViews.empty(loading=True)
        self._version = 0
        self._watcher_backlog = watcher_backlog
        self._watchers: set[asyncio.Queue[RecordViews]] = set()
        self._lock = asyncio.Lock()
        self._subscription: Subscription | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._generation = 0
        session.add_listener(self.sync)

    @property
    def views(self) -> RecordViews:
        return self._views

    @property
    def version(self) -> int:
        return self._version

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    @property
    def collection_path(self) -> str:
        return self._collection_path

    async def sync(self) -> None:
        """Opens or releases the subscription to match the session state."""
        async with self._lock:
            if self._session.ready and self._session.identity is not None:
                if self._subscription is None:
                    self._open()
            elif self._subscription is not None:
                await self._release()

    async def close(self) -> None:
        async with self._lock:
            if self._subscription is not None:
                await self._release()

    async def updates(self, *, replay_current: bool = False) -> AsyncIterator[RecordViews]:
        """Yields every published view, in publication order, from the first await on.

        With ``replay_current`` the view current at registration comes first.
        A watcher that falls more than ``watcher_backlog`` views behind loses
        the oldest ones; the latest view is always delivered.
        """
        queue: asyncio.Queue[RecordViews] = asyncio.Queue(maxsize=self._watcher_backlog)
        if replay_current:
            queue.put_nowait(self._views)
        self._watchers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._watchers.discard(queue)

    async def submit_service_request(self, fields: ServiceRequestFields) -> SubmitResult:
        return await self._submit(
            lambda identity: encode_service_request(fields, identity),
            success_message=REQUEST_SUBMITTED_MESSAGE,
            failure_message=REQUEST_FAILED_MESSAGE,
        )

    async def submit_asset_registration(self, fields: AssetRegistrationFields) -> SubmitResult:
        return await self._submit(
            lambda identity: encode_asset_registration(fields, identity),
            success_message=ASSET_REGISTERED_MESSAGE,
            failure_message=ASSET_FAILED_MESSAGE,
        )

    async def _submit(
        self,
        build: Callable[[Identity], dict[str, Any]],
        *,
        success_message: str,
        failure_message: str,
    ) -> SubmitResult:
        identity = self._session.identity
        if identity is None:
            logger.warning("submit_rejected_not_ready", extra={"component": "usm_core"})
            self._notifier.error(NOT_READY_MESSAGE)
            return SubmitResult(ok=False, message=NOT_READY_MESSAGE, code="NOT_READY")
        document = build(identity)
        try:
            record_id = await self._backend.append(self._collection_path, document)
        except Exception:
            logger.exception(
                "submit_failed",
                extra={"component": "usm_core", "kind": document.get("type"), "uid": identity.uid},
            )
            self._notifier.error(failure_message)
            return SubmitResult(ok=False, message=failure_message, code="WRITE_FAILED")
        logger.info(
            "submit_succeeded",
            extra={"component": "usm_core", "kind": document.get("type"), "record_id": record_id},
        )
        self._notifier.success(success_message)
        return SubmitResult(ok=True, message=success_message, record_id=record_id)

    def _open(self) -> None:
        self._generation += 1
        generation = self._generation
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()

        def _enqueue(item: tuple[str, Any]) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, item)

        self._consumer = loop.create_task(self._consume(queue, generation))
        self._subscription = self._backend.subscribe(
            self._collection_path,
            lambda documents: _enqueue((_SNAPSHOT, documents)),
            lambda error: _enqueue((_ERROR, error)),
        )
        logger.info(
            "subscription_opened",
            extra={"component": "usm_core", "collection_path": self._collection_path, "generation": generation},
        )

    async def _release(self) -> None:
        self._generation += 1
        subscription, self._subscription = self._subscription, None
        consumer, self._consumer = self._consumer, None
        if subscription is not None:
            subscription.unsubscribe()
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
        self._publish(RecordViews.empty(loading=True))
        logger.info("subscription_released", extra={"component": "usm_core", "collection_path": self._collection_path})

    async def _consume(self, queue: asyncio.Queue[tuple[str, Any]], generation: int) -> None:
        while True:
            kind, payload = await queue.get()
            if generation != self._generation:
                return
            if kind != _SNAPSHOT:
                self._apply_error(payload)
                continue
            try:
                self._apply_snapshot(payload)
            except Exception as exc:
                logger.exception(
                    "snapshot_recompute_failed",
                    extra={"component": "usm_core", "collection_path": self._collection_path},
                )
                self._apply_error(exc)

    def _apply_snapshot(self, documents: list[Document]) -> None:
        views = partition_records(decode_documents(documents))
        self._publish(views)
        logger.debug(
            "snapshot_applied",
            extra={
                "component": "usm_core",
                "service_requests": len(views.service_requests),
                "asset_registrations": len(views.asset_registrations),
            },
        )

    def _apply_error(self, error: Exception) -> None:
        logger.error(
            "subscription_failed",
            extra={"component": "usm_core", "collection_path": self._collection_path, "error": str(error)},
        )
        self._notifier.error(LOAD_FAILED_MESSAGE)
        self._publish(
            RecordViews(
                service_requests=self._views.service_requests,
                asset_registrations=self._views.asset_registrations,
                loading=False,
            )
        )

    def _publish(self, views: RecordViews) -> None:
        self._views = views
        self._version += 1
        for queue in list(self._watchers):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(views)
