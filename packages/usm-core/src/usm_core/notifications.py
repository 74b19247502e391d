from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from usm_kit.clock import now_utc

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    severity: Severity
    sequence: int

    def to_dict(self) -> dict[str, object]:
        return {"message": self.message, "severity": self.severity.value, "sequence": self.sequence}


class Notifier:
    """Single-slot notification channel: the latest message replaces any prior one."""

    def __init__(self) -> None:
        self._current: Notification | None = None
        self._sequence = 0

    @property
    def current(self) -> Notification | None:
        return self._current

    @property
    def sequence(self) -> int:
        return self._sequence

    def notify(self, message: str, severity: Severity = Severity.SUCCESS) -> Notification:
        self._sequence += 1
        self._current = Notification(message=message, severity=severity, sequence=self._sequence)
        level = logging.ERROR if severity is Severity.ERROR else logging.INFO
        logger.log(
            level,
            "notification_published",
            extra={
                "component": "usm_core",
                "severity": severity.value,
                "notification": message,
                "published_at": now_utc().isoformat(),
            },
        )
        return self._current

    def success(self, message: str) -> Notification:
        return self.notify(message, Severity.SUCCESS)

    def error(self, message: str) -> Notification:
        return self.notify(message, Severity.ERROR)

    def dismiss(self) -> None:
        self._current = None
