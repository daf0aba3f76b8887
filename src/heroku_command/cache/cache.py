"""Disk-based cache for completion value lists.

Uses :mod:`diskcache` to persist the names fetched for shell completion
(apps, regions, dyno sizes, ...) with a per-entry time-to-live, so that
pressing TAB does not cost an API round-trip every time.

Cache keys are SHA-256 hashes of ``API_URL|KEY`` so that completions for
different platform hosts never collide.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Optional

import diskcache


class CompletionCache:
    """Disk-backed cache for completion values.

    Args:
        cache_dir: Root directory for the cache. A ``completions/``
            subdirectory is created inside it.
        namespace: Distinguishes platform hosts; normally the API URL.

    Example::

        cache = CompletionCache(get_cache_dir(), "https://api.heroku.com")
        cache.set("apps", ["myapp"], ttl=86400)
        cache.get("apps")  # ["myapp"]
    """

    def __init__(self, cache_dir: str | Path, namespace: str = "") -> None:
        self._cache_dir = Path(cache_dir) / "completions"
        self._namespace = namespace
        self._cache = diskcache.Cache(str(self._cache_dir))

    def get(self, key: str) -> Optional[list[str]]:
        """Return the cached values for *key*, or ``None`` on a miss or expiry."""
        return self._cache.get(self._make_key(key))

    def set(self, key: str, values: list[str], ttl: Optional[float] = None) -> None:
        """Store *values* under *key* for *ttl* seconds (forever when ``None``)."""
        self._cache.set(self._make_key(key), list(values), expire=ttl)

    def invalidate(self, key: str) -> None:
        self._cache.delete(self._make_key(key))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return the entry count and the cache directory."""
        return {"size": len(self._cache), "directory": str(self._cache_dir)}

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def __enter__(self) -> CompletionCache:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _make_key(self, key: str) -> str:
        raw = f"{self._namespace}|{key}"
        return hashlib.sha256(raw.encode()).hexdigest()
