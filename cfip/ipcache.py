from __future__ import annotations
import enum
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from cfip.aggregator import AggregatedResult, AggregationError


logger = logging.getLogger(__name__)

HIT = "HIT"
MISS = "MISS"
HIT_FALLBACK = "HIT-FALLBACK"


class CacheState(enum.Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"
    DISABLED = "disabled"


def iso_utc(ts: float) -> str:
    """Epoch seconds to ``2024-01-01T00:00:00.000Z``."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class CacheEntry:
    result: AggregatedResult
    created_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_fresh(self, now: float) -> bool:
        return (now - self.created_at) < self.ttl


@dataclass(frozen=True)
class CacheLookup:
    result: AggregatedResult
    status: Optional[str]
    expires_at: Optional[float] = None

    @property
    def expires_iso(self) -> Optional[str]:
        return iso_utc(self.expires_at) if self.expires_at is not None else None


class IPCache:
    """Process-wide holder of the last aggregated address list.

    Entries are replaced wholesale, never edited in place, so readers see
    either the previous list or the new one. At most one refresh runs at a
    time; callers queued behind it reuse what it stored.
    """

    def __init__(self,
                 aggregate: Callable[[], AggregatedResult],
                 ttl: float | None = 60.0,
                 clock: Callable[[], float] = time.time):
        self.aggregate = aggregate
        self.ttl = ttl if ttl and ttl > 0 else None
        self.clock = clock
        self._entry: CacheEntry | None = None
        self._refresh_lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl is not None

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def state(self) -> CacheState:
        if not self.enabled:
            return CacheState.DISABLED
        entry = self._entry
        if entry is None:
            return CacheState.EMPTY
        return CacheState.FRESH if entry.is_fresh(self.clock()) else CacheState.STALE

    def _run(self) -> AggregatedResult:
        try:
            return self.aggregate()
        except AggregationError:
            raise
        except Exception as e:
            raise AggregationError(f"{type(e).__name__}: {e}") from e

    def lookup(self) -> CacheLookup:
        if not self.enabled:
            return CacheLookup(self._run(), None)

        entry = self._entry
        if entry is not None and entry.is_fresh(self.clock()):
            logger.debug("[ip-cache] serving cached list")
            return CacheLookup(entry.result, HIT, entry.expires_at)

        with self._refresh_lock:
            # another caller may have refreshed while this one waited
            entry = self._entry
            if entry is not None and entry.is_fresh(self.clock()):
                return CacheLookup(entry.result, HIT, entry.expires_at)
            try:
                result = self._run()
            except AggregationError as e:
                if entry is None:
                    logger.error(f"[ip-cache] refresh failed with nothing cached: {e}")
                    raise
                logger.warning(f"[ip-cache] refresh failed, serving stale list: {e}")
                return CacheLookup(entry.result, HIT_FALLBACK, entry.expires_at)
            fresh = CacheEntry(result=result, created_at=self.clock(), ttl=self.ttl)  # type: ignore[arg-type]
            self._entry = fresh
            logger.info(f"[ip-cache] refreshed: {len(result)} addresses, expires {iso_utc(fresh.expires_at)}")
            return CacheLookup(fresh.result, MISS, fresh.expires_at)

    def snapshot(self) -> Dict[str, Any]:
        entry = self._entry
        data: Dict[str, Any] = {
            "state": self.state().value,
            "ttl_seconds": self.ttl,
            "count": 0,
            "created_at": None,
            "expires_at": None,
        }
        if entry is not None:
            data.update({
                "count": len(entry.result),
                "created_at": iso_utc(entry.created_at),
                "expires_at": iso_utc(entry.expires_at),
            })
        return data
