from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Protocol

from usm_core.models import Identity


class SessionStore(ABC):
    @abstractmethod
    async def load(self, session_key: str) -> Identity | None:
        raise NotImplementedError

    @abstractmethod
    async def save(self, session_key: str, identity: Identity) -> None:
        raise NotImplementedError

    @abstractmethod
    async def clear(self, session_key: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class RedisLikeSessionClient(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ex: int | None = None) -> bool | None: ...

    async def delete(self, *keys: str) -> int: ...

    async def aclose(self) -> None: ...


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, Identity] = {}

    async def load(self, session_key: str) -> Identity | None:
        return self._sessions.get(session_key)

    async def save(self, session_key: str, identity: Identity) -> None:
        self._sessions[session_key] = identity

    async def clear(self, session_key: str) -> None:
        self._sessions.pop(session_key, None)


class RedisSessionStore(SessionStore):
    def __init__(self, client: RedisLikeSessionClient, ttl_seconds: int = 30 * 24 * 3600) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def _key(session_key: str) -> str:
        return f"usm_session:{session_key}"

    async def load(self, session_key: str) -> Identity | None:
        raw = await self._client.get(self._key(session_key))
        if not raw:
            return None
        try:
            payload = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(payload, dict) or not payload.get("uid"):
            return None
        return Identity(uid=str(payload["uid"]), anonymous=bool(payload.get("anonymous", True)))

    async def save(self, session_key: str, identity: Identity) -> None:
        value = json.dumps({"uid": identity.uid, "anonymous": identity.anonymous})
        await self._client.set(self._key(session_key), value, ex=self._ttl_seconds)

    async def clear(self, session_key: str) -> None:
        await self._client.delete(self._key(session_key))

    async def close(self) -> None:
        await self._client.aclose()
