from usm_core.backend.base import ErrorCallback, IdentityProvider, RecordBackend, SnapshotCallback, Subscription
from usm_core.backend.memory import InMemoryBackend

__all__ = [
    "ErrorCallback",
    "IdentityProvider",
    "InMemoryBackend",
    "RecordBackend",
    "SnapshotCallback",
    "Subscription",
]
