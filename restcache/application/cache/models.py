"""Data models for the cache module."""

import enum
import time
from dataclasses import dataclass, field
from typing import Any


class CacheOutcome(enum.Enum):
    """Terminal state of a single request cycle."""

    PASSTHROUGH = "passthrough"
    SERVE_CACHED = "serve_cached"
    SERVE_FRESH = "serve_fresh"


@dataclass
class CacheEntry:
    """A stored payload together with its absolute expiry time."""

    key: str
    payload: Any
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
