"""Cache-first storage of swarm output, keyed by a filter fingerprint with a TTL."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, Protocol

from models import DiseaseTopic, Paper

CACHE_KEY_PREFIX = "bioinsight_cache:"
CACHE_PATH = os.getenv("CACHE_PATH", ".bioinsight_cache.json")
CACHE_QUOTA_BYTES = int(os.getenv("CACHE_QUOTA_BYTES", str(5 * 1024 * 1024)))

# Volatile feeds expire quickly; patents move slowly.
VARIANT_TTL_MS: dict[str, int] = {
    "live": int(os.getenv("CACHE_TTL_LIVE_MS", str(15 * 60 * 1000))),
    "ai": int(os.getenv("CACHE_TTL_AI_MS", str(60 * 60 * 1000))),
    "patent": int(os.getenv("CACHE_TTL_PATENT_MS", str(24 * 60 * 60 * 1000))),
}
DEFAULT_TTL_MS = VARIANT_TTL_MS["live"]

LOGGER = logging.getLogger(__name__)


class StoreQuotaError(RuntimeError):
    """Raised by a store when a write would exceed its quota."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process string store with an optional byte quota."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
            if used + len(key) + len(value) > self.quota_bytes:
                raise StoreQuotaError(f"Store quota of {self.quota_bytes} bytes exceeded")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """String store persisted as one JSON object on disk."""

    def __init__(self, path: str | Path = CACHE_PATH, quota_bytes: int | None = CACHE_QUOTA_BYTES) -> None:
        self.path = Path(path)
        self.quota_bytes = quota_bytes

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable cache file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        encoded = json.dumps(data)
        if self.quota_bytes is not None and len(encoded.encode("utf-8")) > self.quota_bytes:
            raise StoreQuotaError(f"Cache file quota of {self.quota_bytes} bytes exceeded")
        self.path.write_text(encoded, encoding="utf-8")

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


def filter_fingerprint(topics: Iterable[DiseaseTopic | str], variant: str = "live") -> str:
    """Deterministic key for a topic selection and feed variant (order-insensitive)."""
    values = sorted({topic.value if isinstance(topic, DiseaseTopic) else str(topic) for topic in topics})
    return f"{variant}:{'|'.join(values)}"


def ttl_for_variant(variant: str) -> int:
    return VARIANT_TTL_MS.get(variant, DEFAULT_TTL_MS)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class PaperCache:
    """TTL cache of paper lists over an injected key-value store."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], int] = _epoch_ms) -> None:
        self.store = store
        self.clock = clock

    def get(self, fingerprint: str, ttl_ms: int | None = None) -> list[Paper] | None:
        """Return cached papers, or None when absent, expired or unreadable.

        Expired and corrupt entries are deleted, not just skipped.
        """
        key = CACHE_KEY_PREFIX + fingerprint
        raw = self.store.get(key)
        if raw is None:
            return None

        if ttl_ms is None:
            ttl_ms = ttl_for_variant(fingerprint.split(":", 1)[0])

        try:
            entry = json.loads(raw)
            timestamp = int(entry["timestamp"])
            papers = [Paper.from_dict(item) for item in entry["papers"]]
        except (ValueError, KeyError, TypeError) as exc:
            LOGGER.warning("Dropping corrupt cache entry %s: %s", fingerprint, exc)
            self.store.delete(key)
            return None

        age = self.clock() - timestamp
        if age >= ttl_ms:
            LOGGER.info("Cache expired for %s (age_ms=%s ttl_ms=%s)", fingerprint, age, ttl_ms)
            self.store.delete(key)
            return None

        LOGGER.info("Cache hit for %s: %s papers (age_ms=%s)", fingerprint, len(papers), age)
        return papers

    def put(self, fingerprint: str, papers: list[Paper]) -> bool:
        """Overwrite the entry for ``fingerprint``. Returns False when the write failed."""
        return self._write(fingerprint, self.clock(), papers)

    def update(self, fingerprint: str, papers: list[Paper]) -> bool:
        """Replace the papers of an existing entry, keeping its original timestamp.

        Used after on-demand edits such as link polishing, so the edit survives
        cache hits without extending the entry's lifetime. Returns False when
        there is no readable entry or the write failed.
        """
        raw = self.store.get(CACHE_KEY_PREFIX + fingerprint)
        if raw is None:
            return False
        try:
            timestamp = int(json.loads(raw)["timestamp"])
        except (ValueError, KeyError, TypeError) as exc:
            LOGGER.warning("Not updating corrupt cache entry %s: %s", fingerprint, exc)
            return False
        return self._write(fingerprint, timestamp, papers)

    def _write(self, fingerprint: str, timestamp: int, papers: list[Paper]) -> bool:
        entry = {"timestamp": timestamp, "papers": [paper.to_dict() for paper in papers]}
        try:
            self.store.set(CACHE_KEY_PREFIX + fingerprint, json.dumps(entry))
        except (StoreQuotaError, OSError, TypeError, ValueError) as exc:
            LOGGER.warning("Cache write failed for %s (ignored): %s", fingerprint, exc)
            return False
        return True
