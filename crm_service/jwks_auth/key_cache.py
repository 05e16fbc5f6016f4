"""
In-memory holder of the current signing-key snapshot.

The cache never talks to the network. It holds exactly one immutable
``KeySnapshot``; a refresh builds a brand-new snapshot and swaps it in, so a
reader either sees the old key set or the new one, never a half-filled map.
A ``kid`` missing from the new document stops resolving immediately, even if
it was cached before (no merge, no grace period).
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .keys import VerificationKey

DEFAULT_TTL_SECONDS = 3600


@dataclass(frozen=True)
class KeySnapshot:
    """Immutable ``kid -> VerificationKey`` mapping plus its fetch time."""

    keys: Mapping[str, VerificationKey]
    fetched_at: float

    def __post_init__(self) -> None:
        # Copy and wrap so the published map cannot be edited afterwards.
        object.__setattr__(self, "keys", MappingProxyType(dict(self.keys)))

    def __len__(self) -> int:
        return len(self.keys)

    def get(self, kid: str) -> VerificationKey | None:
        return self.keys.get(kid)

    def age(self, now: float) -> float:
        return now - self.fetched_at


class KeyCache:
    """
    Thread-safe holder of the current ``KeySnapshot``.

    ``clock`` must be monotonic; it is injectable so tests can move time
    without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: KeySnapshot | None = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def snapshot(self) -> KeySnapshot | None:
        return self._snapshot

    def now(self) -> float:
        return self._clock()

    def lookup(self, kid: str) -> VerificationKey | None:
        """Return the key for ``kid`` from the current snapshot, or None."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return snapshot.get(kid)

    def is_stale(self, now: float | None = None, ttl: float | None = None) -> bool:
        """True when there is no snapshot yet or it is at least ``ttl`` old."""
        snapshot = self._snapshot
        if snapshot is None:
            return True
        now = self._clock() if now is None else now
        ttl = self._ttl if ttl is None else ttl
        return snapshot.age(now) >= ttl

    def replace(self, snapshot: KeySnapshot) -> None:
        """Atomically publish ``snapshot``; the last call wins."""
        with self._lock:
            self._snapshot = snapshot
