from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, Integer, String, Text, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, mapped_column

from usm_kit.db import Base, SqlDatabase

from usm_core.backend.base import ErrorCallback, IdentityProvider, RecordBackend, SnapshotCallback, Subscription
from usm_core.codec import SUBMITTER_FIELD, TIMESTAMP_FIELD, TYPE_FIELD, is_server_timestamp
from usm_core.exceptions import AppendError, BackendError, SubscriptionError
from usm_core.models import Document, Identity

logger = logging.getLogger(__name__)


class DocumentORM(Base):
    __tablename__ = "usm_documents"

    # Insertion order; breaks ties between rows committed within the same clock tick.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    doc_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    collection_path: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    kind: Mapped[str] = mapped_column(String(64), nullable=False)
    submitter_id: Mapped[str] = mapped_column(String(255), nullable=False)
    data_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, server_default=func.now())


def _fingerprint(documents: list[Document]) -> tuple[tuple[str, str], ...]:
    return tuple((item.id, json.dumps(item.data, sort_keys=True, default=str)) for item in documents)


class SqlRecordBackend(RecordBackend):
    """Collection documents kept in a SQL table; listeners are fed by polling.

    A listener receives the whole collection whenever any row was added or
    any stored field changed since its previous push.
    """

    def __init__(
        self,
        database_url: str,
        *,
        identities: IdentityProvider,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        self._db = SqlDatabase(database_url)
        self._identities = identities
        self._poll_interval_seconds = poll_interval_seconds
        self._pollers: set[asyncio.Task[None]] = set()

    async def current_identity(self) -> Identity | None:
        return await self._identities.current()

    async def sign_in_with_token(self, token: str) -> Identity:
        return await self._identities.sign_in_with_token(token)

    async def sign_in_anonymously(self) -> Identity:
        return await self._identities.sign_in_anonymously()

    async def sign_out(self) -> None:
        await self._identities.sign_out()

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        task = asyncio.get_running_loop().create_task(self._poll(collection_path, on_snapshot, on_error))
        self._pollers.add(task)
        task.add_done_callback(self._pollers.discard)
        return Subscription(task.cancel)

    async def append(self, collection_path: str, document: dict[str, Any]) -> str:
        doc_id = uuid4().hex[:20]
        payload = {key: value for key, value in document.items() if not is_server_timestamp(value) and key != TIMESTAMP_FIELD}
        row = DocumentORM(
            doc_id=doc_id,
            collection_path=collection_path,
            kind=str(document.get(TYPE_FIELD, "")),
            submitter_id=str(document.get(SUBMITTER_FIELD, "")),
            data_json=json.dumps(payload, ensure_ascii=True, default=str),
        )

        async def _insert(session) -> None:
            session.add(row)

        try:
            await self._db.run(_insert)
        except SQLAlchemyError as exc:
            raise AppendError(f"append to {collection_path} failed") from exc
        return doc_id

    async def patch(self, doc_id: str, changes: dict[str, Any]) -> None:
        """Merges fields into a stored document, as an external collaborator would."""

        async def _update(session) -> None:
            row = await session.scalar(select(DocumentORM).where(DocumentORM.doc_id == doc_id))
            if row is None:
                raise BackendError(f"document {doc_id} not found")
            data = json.loads(row.data_json or "{}")
            data.update(changes)
            row.data_json = json.dumps(data, ensure_ascii=True, default=str)

        await self._db.run(_update)

    async def close(self) -> None:
        for task in list(self._pollers):
            task.cancel()
        if self._pollers:
            await asyncio.gather(*self._pollers, return_exceptions=True)
        await self._db.dispose()
        await self._identities.close()

    async def fetch_documents(self, collection_path: str) -> list[Document]:
        """Newest insert first."""

        async def _select(session) -> list[Document]:
            stmt = (
                select(DocumentORM)
                .where(DocumentORM.collection_path == collection_path)
                .order_by(DocumentORM.seq.desc())
            )
            return [self._to_document(row) for row in (await session.scalars(stmt)).all()]

        return await self._db.run(_select)

    async def _poll(self, collection_path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> None:
        last_fingerprint: tuple | None = None
        while True:
            try:
                documents = await self.fetch_documents(collection_path)
            except Exception as exc:
                logger.error(
                    "snapshot_poll_failed",
                    extra={"component": "usm_core", "collection_path": collection_path},
                    exc_info=True,
                )
                on_error(SubscriptionError(f"snapshot of {collection_path} failed: {exc}"))
                return
            fingerprint = _fingerprint(documents)
            if fingerprint != last_fingerprint:
                last_fingerprint = fingerprint
                on_snapshot(documents)
            await asyncio.sleep(self._poll_interval_seconds)

    @staticmethod
    def _to_document(row: DocumentORM) -> Document:
        try:
            data = json.loads(row.data_json) if row.data_json else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        data[TYPE_FIELD] = row.kind
        data[SUBMITTER_FIELD] = row.submitter_id
        data[TIMESTAMP_FIELD] = row.created_at
        return Document(id=row.doc_id, data=data)
