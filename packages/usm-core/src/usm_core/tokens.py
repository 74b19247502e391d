from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from usm_core.exceptions import InvalidTokenError


def _urlsafe_b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _urlsafe_b64decode(raw: str) -> bytes:
    padding = "=" * ((4 - len(raw) % 4) % 4)
    return base64.urlsafe_b64decode((raw + padding).encode("ascii"))


@dataclass(frozen=True)
class SessionTokenPayload:
    sub: str
    iat: int
    exp: int

    def to_dict(self) -> dict[str, Any]:
        return {"sub": self.sub, "iat": self.iat, "exp": self.exp}


class SessionTokenSigner:
    """HS256 custom sign-in tokens, issued out of band and passed in at launch."""

    def __init__(self, secret: str, ttl_hours: int = 24) -> None:
        if not secret:
            raise ValueError("token secret cannot be empty")
        self._secret = secret.encode("utf-8")
        self._ttl_hours = ttl_hours

    def issue(self, uid: str) -> str:
        now = datetime.now(timezone.utc)
        payload = SessionTokenPayload(
            sub=uid,
            iat=int(now.timestamp()),
            exp=int((now + timedelta(hours=self._ttl_hours)).timestamp()),
        )
        header_raw = _urlsafe_b64encode(json.dumps({"alg": "HS256", "typ": "JWT"}, separators=(",", ":")).encode("utf-8"))
        payload_raw = _urlsafe_b64encode(json.dumps(payload.to_dict(), separators=(",", ":")).encode("utf-8"))
        return f"{header_raw}.{payload_raw}.{self._sign(header_raw, payload_raw)}"

    def verify(self, token: str) -> SessionTokenPayload:
        try:
            header_raw, payload_raw, sig_raw = token.split(".")
        except ValueError as exc:
            raise InvalidTokenError("malformed session token") from exc
        if not hmac.compare_digest(self._sign(header_raw, payload_raw), sig_raw):
            raise InvalidTokenError("invalid session token signature")
        try:
            payload_obj = json.loads(_urlsafe_b64decode(payload_raw))
        except ValueError as exc:
            raise InvalidTokenError("unreadable session token payload") from exc
        if not isinstance(payload_obj, dict) or not isinstance(payload_obj.get("exp", 0), int):
            raise InvalidTokenError("unreadable session token payload")
        exp = int(payload_obj.get("exp", 0))
        if exp <= int(datetime.now(timezone.utc).timestamp()):
            raise InvalidTokenError("session token expired")
        subject = str(payload_obj.get("sub", ""))
        if not subject:
            raise InvalidTokenError("session token has no subject")
        return SessionTokenPayload(sub=subject, iat=int(payload_obj.get("iat", 0)), exp=exp)

    def _sign(self, header_raw: str, payload_raw: str) -> str:
        signed = f"{header_raw}.{payload_raw}".encode("utf-8")
        return _urlsafe_b64encode(hmac.new(self._secret, signed, hashlib.sha256).digest())
