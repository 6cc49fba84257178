"""Cache statistics tracking and reporting."""

import time
from typing import Any, Dict

from .models import CacheOutcome


class CacheStatistics:
    """Counts request-cycle outcomes and store activity."""

    def __init__(self):
        self.reset()

    def record_hit(self):
        self.cache_hits += 1

    def record_miss(self):
        self.cache_misses += 1

    def record_store(self):
        self.stores += 1

    def record_store_error(self):
        """Record a store operation that failed and was degraded to a miss."""
        self.store_errors += 1

    def record_key_failure(self):
        self.key_failures += 1

    def record_delete(self):
        self.deletes += 1

    def record_flush(self, count: int):
        self.flushes += 1
        self.flushed_entries += count

    def record_outcome(self, outcome: CacheOutcome):
        self.outcomes[outcome.value] += 1

    @property
    def hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def get_stats(self) -> Dict[str, Any]:
        """Get all statistics as a dictionary."""
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": round(self.hit_rate, 3),
            "stores": self.stores,
            "store_errors": self.store_errors,
            "key_failures": self.key_failures,
            "deletes": self.deletes,
            "flushes": self.flushes,
            "flushed_entries": self.flushed_entries,
            "outcomes": dict(self.outcomes),
            "uptime_seconds": round(self.uptime_seconds, 1),
        }

    def reset(self):
        """Reset all statistics."""
        self.cache_hits = 0
        self.cache_misses = 0
        self.stores = 0
        self.store_errors = 0
        self.key_failures = 0
        self.deletes = 0
        self.flushes = 0
        self.flushed_entries = 0
        self.outcomes = {outcome.value: 0 for outcome in CacheOutcome}
        self.start_time = time.time()
