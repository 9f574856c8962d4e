"""In-process LRU cache for Clarity Snapshot responses.

Keyed by a hash of the selections and the optional identifiers that affect
enrichment. Entries expire after SNAPSHOT_CACHE_TTL_SECONDS. Responses are
copied on the way in and out, so cached state can't be mutated by callers.
"""

import hashlib
import threading
import time
from collections.abc import Callable

from cachetools import TTLCache

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_snapshot import ClaritySnapshotRequest, ClaritySnapshotResponse

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "clarity_snapshot_"


class SnapshotCache:
    """Size-bounded, TTL-bounded LRU cache over cachetools.TTLCache."""

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 24 * 60 * 60,
        timer: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        # TTLCache evicts the least recently used entry when full
        self._entries: TTLCache[str, ClaritySnapshotResponse] = TTLCache(
            maxsize=max_size, ttl=ttl_seconds, timer=timer
        )
        self._lock = threading.Lock()

    def get(self, key: str) -> ClaritySnapshotResponse | None:
        with self._lock:
            response = self._entries.get(key)
            if response is None:
                return None
            return response.model_copy(deep=True)

    def set(self, key: str, response: ClaritySnapshotResponse) -> None:
        with self._lock:
            self._entries[key] = response.model_copy(deep=True)
        logger.debug(f"Cached snapshot {key}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)


def build_cache_key(request: ClaritySnapshotRequest) -> str:
    """Stable key over the selections and enrichment identifiers."""
    selections = request.selections
    key_parts = [
        ",".join(sorted(channel.value for channel in selections.presence_channels)),
        selections.team_shape.value,
        selections.scheduling.value,
        selections.invoicing.value,
        selections.call_handling.value,
        selections.business_feeling.value,
        request.website_url or "",
        request.google_business_url or "",
        request.social_url or "",
        request.business_id or "",
        request.business_name or "",
    ]
    digest = hashlib.sha256("|".join(key_parts).encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest[:32]}"


_cache: SnapshotCache | None = None
_cache_lock = threading.Lock()


def get_snapshot_cache() -> SnapshotCache:
    """Process-wide cache sized from settings."""
    global _cache
    with _cache_lock:
        if _cache is None:
            settings = get_settings()
            _cache = SnapshotCache(
                max_size=settings.SNAPSHOT_CACHE_MAX_SIZE,
                ttl_seconds=settings.SNAPSHOT_CACHE_TTL_SECONDS,
            )
        return _cache
