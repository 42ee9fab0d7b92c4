"""Rule override stores.

An override store persists a single JSON blob holding a custom rule set.
Absence is the normal "use defaults" state, never an error. Writes happen
only through explicit admin actions (CLI ``rules`` commands).
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Blob = Dict[str, Any]


class OverrideStore(ABC):
    """Key-value persistence for one rule override blob."""

    @abstractmethod
    def load(self) -> Optional[Blob]:
        """Return the stored blob, or None when no override is stored."""
        pass

    @abstractmethod
    def save(self, blob: Blob) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class InMemoryOverrideStore(OverrideStore):
    """Process-local store (tests, embedding)."""

    def __init__(self, blob: Optional[Blob] = None):
        self._blob = blob

    def load(self) -> Optional[Blob]:
        return self._blob

    def save(self, blob: Blob) -> None:
        self._blob = blob

    def clear(self) -> None:
        self._blob = None


class JsonFileOverrideStore(OverrideStore):
    """Override persisted as a JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Blob]:
        if not self.path.exists():
            return None
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return None
        blob = json.loads(text)
        if not isinstance(blob, dict):
            raise ValueError(f"Rule override in {self.path} must be a JSON object")
        return blob

    def save(self, blob: Blob) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(blob, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Saved rule override to %s", self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Removed rule override %s", self.path)


class CachedOverrideStore(OverrideStore):
    """Caches another store's blob for ``ttl_seconds``; writes invalidate."""

    def __init__(
        self,
        inner: OverrideStore,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._blob: Optional[Blob] = None
        self._loaded_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        if self._loaded_at is None:
            return False
        return self._clock() - self._loaded_at <= self.ttl_seconds

    def load(self) -> Optional[Blob]:
        if not self._is_fresh():
            self._blob = self.inner.load()
            self._loaded_at = self._clock()
            if self._blob:
                logger.debug("Loaded %d rule override key(s)", len(self._blob))
        return self._blob

    def invalidate(self) -> None:
        self._loaded_at = None

    def save(self, blob: Blob) -> None:
        self.inner.save(blob)
        self.invalidate()

    def clear(self) -> None:
        self.inner.clear()
        self.invalidate()


def _has_value(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value not in (None, {}, [])


class LayeredOverrideStore(OverrideStore):
    """Global override with an organisation override on top.

    Keys set by the organisation win; keys it leaves unset (or blank) come
    from the global layer. Writes go to the organisation layer.
    """

    def __init__(self, global_store: OverrideStore, org_store: OverrideStore):
        self.global_store = global_store
        self.org_store = org_store

    def load(self) -> Optional[Blob]:
        base = self.global_store.load() or {}
        top = self.org_store.load() or {}
        merged = dict(base)
        merged.update({key: value for key, value in top.items() if _has_value(value)})
        return merged or None

    def save(self, blob: Blob) -> None:
        self.org_store.save(blob)

    def clear(self) -> None:
        self.org_store.clear()


def build_override_store(
    path: Path,
    org_path: Optional[Path] = None,
    ttl_seconds: float = 300.0,
) -> OverrideStore:
    """File-backed store as configured in settings, wrapped in the TTL cache."""
    store: OverrideStore = JsonFileOverrideStore(path)
    if org_path:
        store = LayeredOverrideStore(store, JsonFileOverrideStore(org_path))
    return CachedOverrideStore(store, ttl_seconds=ttl_seconds)
