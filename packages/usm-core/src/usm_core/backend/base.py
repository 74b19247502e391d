from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from usm_core.exceptions import AuthenticationError
from usm_core.models import Document, Identity
from usm_core.sessions import SessionStore
from usm_core.tokens import SessionTokenSigner

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle for one live listener; releasing it twice is a no-op."""

    def __init__(self, release: Callable[[], None]) -> None:
        self._release: Callable[[], None] | None = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def unsubscribe(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()


class RecordBackend(ABC):
    """Hosted backend collaborator: identity, live collection snapshots, appends."""

    @abstractmethod
    async def current_identity(self) -> Identity | None:
        raise NotImplementedError

    @abstractmethod
    async def sign_in_with_token(self, token: str) -> Identity:
        raise NotImplementedError

    @abstractmethod
    async def sign_in_anonymously(self) -> Identity:
        raise NotImplementedError

    @abstractmethod
    async def sign_out(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        raise NotImplementedError

    @abstractmethod
    async def append(self, collection_path: str, document: dict[str, Any]) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class IdentityProvider:
    """Sign-in handling shared by the backend implementations."""

    def __init__(
        self,
        *,
        sessions: SessionStore,
        signer: SessionTokenSigner | None,
        session_key: str = "default",
    ) -> None:
        self._sessions = sessions
        self._signer = signer
        self._session_key = session_key

    async def current(self) -> Identity | None:
        return await self._sessions.load(self._session_key)

    async def sign_in_with_token(self, token: str) -> Identity:
        if self._signer is None:
            raise AuthenticationError("custom token sign-in is not configured")
        payload = self._signer.verify(token)
        identity = Identity(uid=payload.sub, anonymous=False)
        await self._sessions.save(self._session_key, identity)
        logger.info("sign_in_with_token", extra={"component": "usm_core", "uid": identity.uid})
        return identity

    async def sign_in_anonymously(self) -> Identity:
        identity = Identity(uid=uuid4().hex, anonymous=True)
        await self._sessions.save(self._session_key, identity)
        logger.info("sign_in_anonymously", extra={"component": "usm_core", "uid": identity.uid})
        return identity

    async def sign_out(self) -> None:
        await self._sessions.clear(self._session_key)

    async def close(self) -> None:
        await self._sessions.close()
