"""
Adaptive in-memory cache for file contents.

The cache is sized from host memory and keeps shrinking itself when the
machine gets tight on memory:

  - AdaptiveConfig    : limits derived from total/free memory, refreshed at
                        most every 30s and only applied on a >10 point
                        pressure swing
  - AdaptiveFileCache : LRU store keyed by absolute path; an entry is only
                        valid while its recorded size matches the file on disk
  - CacheMaintenance  : asyncio ticker that purges expired entries and
                        refreshes the config every 2 minutes

Memory readings go through a SystemResourceProbe so tests can simulate
pressure without touching the host.

Nothing in this module raises to callers: every failure degrades to
"not cached".
"""

import asyncio
import logging
import os
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

KB = 1024
MB = 1024 * KB
GB = 1024 * MB

CONFIG_CHECK_INTERVAL = 30.0  # seconds between adaptive re-evaluations
PRESSURE_CHANGE_THRESHOLD = 0.1
MAINTENANCE_INTERVAL = 120.0
LARGE_CONTENT_PRESSURE = 0.6  # above this, skip caching content > max_file_size/2
FUZZY_SEARCH_THRESHOLD = 0.3


# ---------------------------------------------------------------------------
# System resource probes
# ---------------------------------------------------------------------------

class SystemResourceProbe:
    """Reports host memory. Subclasses override total_memory/free_memory."""

    def total_memory(self) -> int:
        raise NotImplementedError

    def free_memory(self) -> int:
        raise NotImplementedError

    def memory_pressure(self) -> float:
        """Fraction of memory in use (1 - free/total); 0.0 when unknown."""
        try:
            total = self.total_memory()
            if total <= 0:
                return 0.0
            return max(0.0, min(1.0, 1 - self.free_memory() / total))
        except Exception as e:
            logger.debug("Memory probe failed: %s", e)
            return 0.0


def read_memory(probe: SystemResourceProbe) -> Tuple[int, int]:
    """(total, free) in bytes; (0, 0) when the probe cannot be read."""
    try:
        return probe.total_memory(), probe.free_memory()
    except Exception as e:
        logger.debug("Memory probe failed: %s", e)
        return 0, 0


class HostResourceProbe(SystemResourceProbe):
    """Reads /proc/meminfo on Linux, falls back to sysconf page counts."""

    def _meminfo(self) -> Dict[str, int]:
        values: Dict[str, int] = {}
        try:
            with open("/proc/meminfo", "r", encoding="utf-8") as f:
                for line in f:
                    parts = line.split()
                    if len(parts) >= 2 and parts[0].endswith(":"):
                        # Values are reported in kB
                        values[parts[0][:-1]] = int(parts[1]) * KB
        except (OSError, ValueError):
            pass
        return values

    def _sysconf(self, name: str) -> int:
        try:
            return os.sysconf(name) * os.sysconf("SC_PAGE_SIZE")
        except (ValueError, OSError, AttributeError):
            return 0

    def total_memory(self) -> int:
        info = self._meminfo()
        if "MemTotal" in info:
            return info["MemTotal"]
        return self._sysconf("SC_PHYS_PAGES")

    def free_memory(self) -> int:
        info = self._meminfo()
        if "MemAvailable" in info:
            return info["MemAvailable"]
        if "MemFree" in info:
            return info["MemFree"]
        return self._sysconf("SC_AVPHYS_PAGES")


class StaticResourceProbe(SystemResourceProbe):
    """Fixed readings; mutate ``free`` to simulate pressure changes."""

    def __init__(self, total: int, free: int):
        self.total = total
        self.free = free

    def total_memory(self) -> int:
        return self.total

    def free_memory(self) -> int:
        return self.free


# ---------------------------------------------------------------------------
# Adaptive configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AdaptiveSettings:
    max_file_size: int
    cache_size: int
    cache_ttl: float  # seconds
    chunk_size: int
    fuzzy_search_threshold: float = FUZZY_SEARCH_THRESHOLD
    max_search_depth: int = 8
    memory_pressure_threshold: float = 0.8


BASE_SETTINGS = AdaptiveSettings(
    max_file_size=10 * MB,
    cache_size=50,
    cache_ttl=5 * 60.0,
    chunk_size=64 * KB,
)


def compute_adaptive_settings(total_memory: int, free_memory: int) -> AdaptiveSettings:
    """Derive limits from host memory. Unknown totals fall back to the base settings."""
    if total_memory <= 0:
        return BASE_SETTINGS

    pressure = 1 - free_memory / total_memory

    max_file_size = int(min(
        total_memory * 0.1,
        100 * MB,
        max(BASE_SETTINGS.max_file_size, free_memory * 0.05),
    ))
    # Roughly one cached file per free MB
    cache_size = min(max(10, free_memory // MB), 200)

    if pressure > 0.7:
        cache_ttl = 2 * 60.0
    elif pressure > 0.5:
        cache_ttl = 5 * 60.0
    else:
        cache_ttl = 10 * 60.0

    if free_memory > 2 * GB:
        chunk_size = 128 * KB
    elif free_memory > 512 * MB:
        chunk_size = 64 * KB
    else:
        chunk_size = 32 * KB

    return AdaptiveSettings(
        max_file_size=max_file_size,
        cache_size=int(cache_size),
        cache_ttl=cache_ttl,
        chunk_size=chunk_size,
    )


class AdaptiveConfig:
    """Process-wide file limits, owned by whoever builds the file layer.

    Args:
        probe: Source of memory readings (defaults to the host).
        clock: Monotonic clock, injectable for tests.
        check_interval: Minimum seconds between refresh() evaluations.
    """

    def __init__(
        self,
        probe: Optional[SystemResourceProbe] = None,
        clock: Callable[[], float] = time.monotonic,
        check_interval: float = CONFIG_CHECK_INTERVAL,
    ):
        self.probe = probe or HostResourceProbe()
        self._clock = clock
        self._check_interval = check_interval
        self.settings = compute_adaptive_settings(*read_memory(self.probe))
        self._applied_pressure = self.probe.memory_pressure()
        self._last_check = clock()

    @property
    def max_file_size(self) -> int:
        return self.settings.max_file_size

    @property
    def cache_size(self) -> int:
        return self.settings.cache_size

    @property
    def cache_ttl(self) -> float:
        return self.settings.cache_ttl

    @property
    def chunk_size(self) -> int:
        return self.settings.chunk_size

    @property
    def fuzzy_search_threshold(self) -> float:
        return self.settings.fuzzy_search_threshold

    @property
    def max_search_depth(self) -> int:
        return self.settings.max_search_depth

    @property
    def memory_pressure_threshold(self) -> float:
        return self.settings.memory_pressure_threshold

    def memory_pressure(self) -> float:
        return self.probe.memory_pressure()

    def refresh(self, now: Optional[float] = None) -> bool:
        """Re-evaluate limits; returns True when new settings were applied."""
        now = self._clock() if now is None else now
        if now - self._last_check < self._check_interval:
            return False
        self._last_check = now

        try:
            pressure = self.probe.memory_pressure()
            if abs(pressure - self._applied_pressure) <= PRESSURE_CHANGE_THRESHOLD:
                return False
            self.settings = compute_adaptive_settings(*read_memory(self.probe))
        except Exception as e:
            logger.debug("Adaptive config refresh failed: %s", e)
            return False

        logger.info(
            "Memory pressure moved %.0f%% -> %.0f%%, adaptive limits updated: %s",
            self._applied_pressure * 100, pressure * 100, self.settings,
        )
        self._applied_pressure = pressure
        return True


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

@dataclass
class CacheEntry:
    content: str
    size: int
    timestamp: float
    access_count: int = 1

    @property
    def content_bytes(self) -> int:
        return len(self.content.encode("utf-8"))


class AdaptiveFileCache:
    """LRU + frequency hybrid cache of file contents.

    ``max_size`` and ``ttl`` pin the limits; when omitted they follow the
    live values of ``config``.
    """

    def __init__(
        self,
        config: Optional[AdaptiveConfig] = None,
        max_size: Optional[int] = None,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or AdaptiveConfig()
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._memory_usage = 0

    @property
    def max_size(self) -> int:
        return self._max_size if self._max_size is not None else self.config.cache_size

    @property
    def ttl(self) -> float:
        return self._ttl if self._ttl is not None else self.config.cache_ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def get(self, path: str, current_size: int, current_mtime: Optional[float] = None) -> Optional[str]:
        """Return cached content if fresh and the on-disk size still matches."""
        entry = self._entries.get(path)
        if entry is None:
            return None

        now = self._clock()
        if now - entry.timestamp > self.ttl or entry.size != current_size:
            self.delete(path)
            return None

        entry.timestamp = now
        entry.access_count += 1
        self._entries.move_to_end(path)
        return entry.content

    def set(self, path: str, content: str, size: int) -> None:
        try:
            content_bytes = len(content.encode("utf-8"))
        except UnicodeEncodeError:
            return

        pressure = self.config.memory_pressure()
        if pressure > self.config.memory_pressure_threshold:
            self.emergency_cleanup()

        if content_bytes > self.config.max_file_size * 0.5 and pressure > LARGE_CONTENT_PRESSURE:
            logger.debug(
                "Not caching %s (%d bytes) at %.0f%% memory pressure",
                path, content_bytes, pressure * 100,
            )
            return

        # Replacing an entry must not count against capacity
        self.delete(path)

        while self._entries and len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            self.delete(oldest)

        if self.max_size <= 0:
            return

        self._entries[path] = CacheEntry(content=content, size=size, timestamp=self._clock())
        self._memory_usage += content_bytes

    def delete(self, path: str) -> bool:
        entry = self._entries.pop(path, None)
        if entry is None:
            return False
        self._memory_usage -= entry.content_bytes
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._memory_usage = 0

    def destroy(self) -> None:
        self.clear()

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.timestamp > self.ttl]
        for key in expired:
            self.delete(key)
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    def emergency_cleanup(self) -> int:
        """Shrink to half capacity, dropping the least valuable entries first.

        score = 0.7 * access_count - 0.3 * age_seconds
        """
        target = int(self.max_size * 0.5)
        if len(self._entries) <= target:
            return 0

        now = self._clock()
        ranked = sorted(
            self._entries.items(),
            key=lambda item: item[1].access_count * 0.7 - (now - item[1].timestamp) * 0.3,
        )
        victims = ranked[: len(self._entries) - target]
        for key, _ in victims:
            self.delete(key)
        logger.warning("Memory pressure: evicted %d cache entries", len(victims))
        return len(victims)

    def get_stats(self) -> Dict[str, Any]:
        probe = self.config.probe
        total, free = read_memory(probe)
        return {
            "size": len(self._entries),
            "keys": list(self._entries.keys()),
            "memory_usage": self._memory_usage,
            "total_system_memory": total,
            "free_system_memory": free,
            "memory_pressure": probe.memory_pressure(),
            "config": asdict(self.config.settings),
        }

    def get_efficiency_metrics(self) -> Dict[str, float]:
        count = len(self._entries)
        total_access = sum(e.access_count for e in self._entries.values())
        hits = sum(1 for e in self._entries.values() if e.access_count > 1)
        return {
            "hit_rate": hits / count if count else 0.0,
            "average_access_count": total_access / count if count else 0.0,
            "memory_efficiency": hits / self._memory_usage if self._memory_usage > 0 else 0.0,
        }


# ---------------------------------------------------------------------------
# Background maintenance
# ---------------------------------------------------------------------------

class CacheMaintenance:
    """Owned ticker: purge expired entries, refresh config, relieve pressure."""

    def __init__(self, cache: AdaptiveFileCache, interval: float = MAINTENANCE_INTERVAL):
        self.cache = cache
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> None:
        self.cache.cleanup_expired()
        config = self.cache.config
        if config.refresh() and config.memory_pressure() > config.memory_pressure_threshold:
            self.cache.emergency_cleanup()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.run_once()
            except Exception as e:
                logger.warning("Cache maintenance tick failed: %s", e)

    def start(self) -> None:
        """Start the ticker on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
