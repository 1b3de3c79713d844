from __future__ import annotations

import contextvars
import json
import time
from contextlib import contextmanager
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable, Iterator

"""
Simple on-disk JSON cache.

Used by the geocoding client so re-running a walkthrough over the same address
list does not spend API quota again:
- values are stored as JSON under `.cache/nearpair/<namespace>/` by default,
- keys are hashed (SHA-256) to avoid filesystem path issues,
- TTL is enforced on read; expired entries remain available as "stale" values.
"""


@dataclass
class CacheStats:
    """Cache usage counters for one CLI run (best-effort)."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    stale_fallbacks: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "hits": int(self.hits),
            "misses": int(self.misses),
            "sets": int(self.sets),
            "stale_fallbacks": int(self.stale_fallbacks),
        }


_cache_stats_var: contextvars.ContextVar[CacheStats | None] = contextvars.ContextVar(
    "nearpair_cache_stats", default=None
)


@contextmanager
def record_cache_stats() -> Iterator[CacheStats]:
    """Capture cache stats within the current context."""
    stats = CacheStats()
    token = _cache_stats_var.set(stats)
    try:
        yield stats
    finally:
        _cache_stats_var.reset(token)


def _bump(field: str) -> None:
    st = _cache_stats_var.get()
    if st is not None:
        setattr(st, field, getattr(st, field) + 1)


class FileCache:
    """A filesystem-backed cache keyed by (namespace, key)."""

    def __init__(self, base_dir: Path, enabled: bool = True, default_ttl_seconds: int = 86400):
        self._base_dir = Path(base_dir)
        self._enabled = enabled
        self._default_ttl_seconds = int(default_ttl_seconds)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _key_path(self, namespace: str, key: str) -> Path:
        digest = sha256(f"{namespace}:{key}".encode("utf-8")).hexdigest()
        return self._base_dir / namespace / f"{digest}.json"

    def _read_envelope(self, namespace: str, key: str) -> dict[str, Any] | None:
        path = self._key_path(namespace, key)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(raw, dict) or "value" not in raw:
            return None
        return raw

    def get(self, namespace: str, key: str, ttl_seconds: int | None = None) -> Any | None:
        """Read a cached value if present and not expired; otherwise return None."""
        if not self._enabled:
            return None

        raw = self._read_envelope(namespace, key)
        if raw is None:
            _bump("misses")
            return None

        try:
            created = int(raw["created_at_unix"])
            ttl = int(ttl_seconds if ttl_seconds is not None else raw["ttl_seconds"])
        except (KeyError, TypeError, ValueError):
            _bump("misses")
            return None

        if int(time.time()) - created > ttl:
            _bump("misses")
            return None

        _bump("hits")
        return raw["value"]

    def get_stale(self, namespace: str, key: str) -> Any | None:
        """Read a cached value even if expired; otherwise return None."""
        if not self._enabled:
            return None
        raw = self._read_envelope(namespace, key)
        return None if raw is None else raw.get("value")

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Write a JSON-serializable value to disk (temp file + atomic replace)."""
        if not self._enabled:
            return None

        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds
        path = self._key_path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "created_at_unix": int(time.time()),
            "ttl_seconds": int(ttl),
            "value": value,
        }
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)
        _bump("sets")

    def get_or_set(
        self,
        namespace: str,
        key: str,
        builder: Callable[[], Any],
        ttl_seconds: int | None = None,
        *,
        stale_if_error: bool = False,
        stale_predicate: Callable[[Exception], bool] | None = None,
    ) -> Any:
        """Return cached value, or compute/store it via `builder`.

        With `stale_if_error`, a failing `builder()` falls back to an expired value
        when one exists and `stale_predicate(exc)` is True (or no predicate is given).
        """
        cached = self.get(namespace, key, ttl_seconds=ttl_seconds)
        if cached is not None:
            return cached
        try:
            value = builder()
        except Exception as exc:
            if stale_if_error and (stale_predicate(exc) if stale_predicate else True):
                stale = self.get_stale(namespace, key)
                if stale is not None:
                    _bump("stale_fallbacks")
                    return stale
            raise
        self.set(namespace, key, value, ttl_seconds=ttl_seconds)
        return value
