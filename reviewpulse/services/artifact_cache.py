"""Versioned, TTL-bound cache for expensive derived artifacts."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Callable, Generic, Optional, TypeVar

from reviewpulse.core.errors import UnknownArtifact
from reviewpulse.models.analytics import CacheEntry, CacheStatus
from reviewpulse.repositories.memory_store import StoreSnapshot
from reviewpulse.telemetry import record_cache_lookup

_logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL = timedelta(hours=2)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def dataset_version(snapshot: StoreSnapshot) -> str:
    """Digest of record counts and the newest timestamp in the working set.

    Detects that the dataset changed; it is not a content hash.
    """

    latest = snapshot.latest_update()
    summary = ":".join(
        [
            str(len(snapshot.pull_requests)),
            str(len(snapshot.reviews)),
            str(len(snapshot.comments)),
            latest.isoformat() if latest else "-",
        ]
    )
    return sha256(summary.encode("utf-8")).hexdigest()[:16]


class ArtifactCache(Generic[T]):
    """A single slot holding one artifact class, e.g. the repository-wide learning report."""

    def __init__(
        self,
        name: str,
        version_source: Callable[[], str],
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.name = name
        self._version_source = version_source
        self._ttl = ttl
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None

    def current_version(self) -> str:
        return self._version_source()

    def create(self, data: T) -> CacheEntry[T]:
        now = self._clock()
        return CacheEntry(
            data=data,
            generated_at=now,
            expires_at=now + self._ttl,
            version=self.current_version(),
        )

    def is_valid(self, entry: Optional[CacheEntry[T]]) -> bool:
        if entry is None:
            return False
        return self._clock() < entry.expires_at and entry.version == self.current_version()

    def put(self, data: T) -> CacheEntry[T]:
        entry = self.create(data)
        self._entry = entry
        return entry

    def entry(self) -> Optional[CacheEntry[T]]:
        return self._entry

    def get(self) -> Optional[T]:
        entry = self._entry
        hit = self.is_valid(entry)
        record_cache_lookup(self.name, hit)
        if not hit:
            return None
        return entry.data

    def get_or_compute(self, compute: Callable[[], T]) -> T:
        cached = self.get()
        if cached is not None:
            return cached
        _logger.info("Recomputing cached artifact %s", self.name)
        return self.put(compute()).data

    def clear(self) -> None:
        self._entry = None

    def status(self) -> CacheStatus:
        entry = self._entry
        if entry is None:
            return CacheStatus(cached=False, valid=False)
        now = self._clock()
        return CacheStatus(
            cached=True,
            valid=self.is_valid(entry),
            generated_at=entry.generated_at,
            expires_at=entry.expires_at,
            version=entry.version,
            age_minutes=int((now - entry.generated_at).total_seconds() // 60),
            expires_in_minutes=max(int((entry.expires_at - now).total_seconds() // 60), 0),
        )


class ArtifactCacheRegistry:
    """Named cache slots sharing one version source and TTL."""

    def __init__(
        self,
        version_source: Callable[[], str],
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._version_source = version_source
        self._ttl = ttl
        self._clock = clock
        self._slots: dict[str, ArtifactCache] = {}

    def slot(self, name: str, version_source: Callable[[], str] | None = None) -> ArtifactCache:
        """Return the named slot, creating it on first use.

        ``version_source`` only applies when the slot is created; per-PR slots
        pass one scoped to that pull request.
        """

        if name not in self._slots:
            self._slots[name] = ArtifactCache(
                name, version_source or self._version_source, ttl=self._ttl, clock=self._clock
            )
        return self._slots[name]

    def existing(self, name: str) -> ArtifactCache:
        try:
            return self._slots[name]
        except KeyError as exc:
            raise UnknownArtifact(name) from exc

    def names(self) -> list[str]:
        return sorted(self._slots)

    def clear(self, name: str | None = None) -> None:
        if name is None:
            for cache in self._slots.values():
                cache.clear()
            return
        self.existing(name).clear()
