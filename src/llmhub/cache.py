"""Reply caches keyed by a SHA-256 digest of the request.

Two interchangeable strategies share the key derivation in
:func:`compute_cache_key`: a bounded in-memory LRU with TTL and a
file-backed store that survives process restarts.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
import hashlib
import logging
import math
import os
from pathlib import Path
import tempfile
import threading
import time
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from llmhub.errors import CacheError
from llmhub.types import Reply

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from llmhub.types import Message

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_CACHE_DIR = ".llmhub-cache"
CACHE_FILE_SUFFIX = ".json"


def compute_cache_key(
    messages: Sequence[Message],
    model: str,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> str:
    """Compute the deterministic cache key for a request.

    Key = sha256("model:<m>|" ["temp:<t>|"] ["max:<n>|"] "messages:" role:content|...)

    Roles render as their upper-case names and temperatures the way
    :func:`format_double` does, so the digest matches keys written by
    earlier releases. Message ``name`` and ``tool_call_id`` are not part of
    the key.
    """
    parts = [f"model:{model}|"]
    if temperature is not None:
        parts.append(f"temp:{format_double(temperature)}|")
    if max_tokens is not None:
        parts.append(f"max:{max_tokens}|")
    parts.append("messages:")
    parts.append("|".join(f"{m.role.name}:{m.content}" for m in messages))
    return hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()


def format_double(value: float) -> str:
    """Render *value* like ``java.lang.Double.toString``.

    Plain decimal with at least one fractional digit inside [1e-3, 1e7),
    otherwise ``<d>.<ddd>E<exp>``, e.g. ``0.0005`` becomes ``5.0E-4``.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0.0:
        return "-0.0" if str(value).startswith("-") else "0.0"
    if 1e-3 <= abs(value) < 1e7:
        return repr(value)

    sign, digits, exponent = Decimal(repr(value)).as_tuple()
    significant = list(digits)
    while len(significant) > 1 and significant[-1] == 0:
        significant.pop()
        exponent += 1  # type: ignore[operator]
    scientific = exponent + len(significant) - 1  # type: ignore[operator]
    fraction = "".join(str(d) for d in significant[1:]) or "0"
    prefix = "-" if sign else ""
    return f"{prefix}{significant[0]}.{fraction}E{scientific}"


@runtime_checkable
class Cache(Protocol):
    """Minimal cache protocol consumed by the orchestrator."""

    def get(self, key: str) -> Reply | None: ...

    def put(self, key: str, reply: Reply) -> None: ...

    def evict(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def generate_key(
        self,
        messages: Sequence[Message],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str: ...

    @property
    def enabled(self) -> bool: ...


class BaseCache:
    """Shared key derivation for cache implementations."""

    def generate_key(
        self,
        messages: Sequence[Message],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        return compute_cache_key(messages, model, temperature, max_tokens)


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache counters."""

    hit_count: int = 0
    miss_count: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Hits over total lookups; 0.0 before the first lookup."""
        total = self.hit_count + self.miss_count
        return self.hit_count / total if total else 0.0


@dataclass
class _Entry:
    reply: Reply
    expires_at: float


class MemoryCache(BaseCache):
    """In-memory LRU cache with per-entry time-to-live.

    Safe for concurrent ``get``/``put`` from multiple threads. Expired
    entries are dropped lazily on read and when the cache is full.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise CacheError(f"max_size must be >= 1, got {max_size}")
        if ttl_seconds <= 0:
            raise CacheError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()
        self._enabled = True
        self._hits = 0
        self._misses = 0
        logger.info(
            "MemoryCache initialized with max_size=%d, ttl=%ss", max_size, ttl_seconds
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        """Toggle the cache; disabling also drops every stored entry."""
        with self._lock:
            self._enabled = value
            if not value:
                self._entries.clear()
        logger.info("MemoryCache enabled: %s", value)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Reply | None:
        with self._lock:
            if not self._enabled:
                return None
            entry = self._entries.get(key)
            if entry is not None and self._clock() >= entry.expires_at:
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                logger.debug("Cache miss for key: %s", key[:16])
                return None
            self._entries.move_to_end(key)
            self._hits += 1
        logger.debug("Cache hit for key: %s", key[:16])
        return entry.reply

    def put(self, key: str, reply: Reply) -> None:
        with self._lock:
            if not self._enabled:
                return
            self._entries[key] = _Entry(reply, self._clock() + self._ttl)
            self._entries.move_to_end(key)
            if len(self._entries) > self._max_size:
                self._purge_expired()
            while len(self._entries) > self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least recently used key: %s", evicted[:16])
        logger.debug("Cached response for key: %s", key[:16])

    def evict(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
        logger.debug("Evicted cache for key: %s", key[:16])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Cleared all cache entries")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hit_count=self._hits,
                miss_count=self._misses,
                size=len(self._entries),
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]


class FileCache(BaseCache):
    """One JSON file per key under a directory.

    Unreadable or corrupted files are deleted and reported as a miss.
    """

    def __init__(self, directory: str | os.PathLike[str] = DEFAULT_CACHE_DIR) -> None:
        self._dir = Path(directory)
        self._enabled = True
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(
                f"Failed to create cache directory: {self._dir}",
                hint="Check that the path is writable or pass another directory.",
            ) from e
        logger.info("FileCache initialized at: %s", self._dir.resolve())

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value
        logger.info("FileCache enabled: %s", value)

    def get(self, key: str) -> Reply | None:
        if not self._enabled:
            return None
        path = self._path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.debug("Cache miss for key: %s", key[:16])
            return None
        except OSError as e:
            logger.warning("Failed to read cache file %s: %s", path, e)
            self._discard(path)
            return None

        try:
            reply = Reply.from_json(data)
        except ValueError as e:
            logger.warning("Discarding corrupted cache file %s: %s", path, e)
            self._discard(path)
            return None
        logger.debug("Cache hit for key: %s", key[:16])
        return reply

    def put(self, key: str, reply: Reply) -> None:
        if not self._enabled:
            return
        path = self._path(key)
        # Write-then-rename so readers never observe a half-written file.
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(reply.to_json())
            os.replace(tmp_name, path)
        except OSError as e:
            logger.warning("Failed to write cache file %s: %s", path, e)
            if tmp_name is not None:
                self._discard(Path(tmp_name))
            return
        logger.debug("Cached response to file: %s", path)

    def evict(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            self._discard(path)
            logger.debug("Evicted cache file: %s", path)

    def clear(self) -> None:
        for path in self._files():
            self._discard(path)
        logger.info("Cleared all cache files in: %s", self._dir)

    def file_count(self) -> int:
        return sum(1 for _ in self._files())

    def size_bytes(self) -> int:
        total = 0
        for path in self._files():
            try:
                total += path.stat().st_size
            except OSError:
                continue
        return total

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}{CACHE_FILE_SUFFIX}"

    def _files(self) -> list[Path]:
        return [p for p in self._dir.glob(f"*{CACHE_FILE_SUFFIX}") if p.is_file()]

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to delete cache file %s: %s", path, e)
