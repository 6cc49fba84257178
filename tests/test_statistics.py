"""Tests for cache statistics."""

from restcache.application.cache import CacheOutcome, CacheStatistics


class TestCacheStatistics:
    """Test counters and derived values."""

    def test_hit_rate(self):
        stats = CacheStatistics()
        assert stats.hit_rate == 0.0

        stats.record_hit()
        stats.record_hit()
        stats.record_hit()
        stats.record_miss()

        assert stats.hit_rate == 0.75

    def test_outcomes(self):
        stats = CacheStatistics()
        stats.record_outcome(CacheOutcome.PASSTHROUGH)
        stats.record_outcome(CacheOutcome.SERVE_FRESH)
        stats.record_outcome(CacheOutcome.SERVE_FRESH)

        assert stats.get_stats()["outcomes"] == {
            "passthrough": 1,
            "serve_cached": 0,
            "serve_fresh": 2,
        }

    def test_flush_counts_entries(self):
        stats = CacheStatistics()
        stats.record_flush(3)
        stats.record_flush(2)

        data = stats.get_stats()
        assert data["flushes"] == 2
        assert data["flushed_entries"] == 5

    def test_reset(self):
        stats = CacheStatistics()
        stats.record_hit()
        stats.record_store_error()
        stats.reset()

        data = stats.get_stats()
        assert data["cache_hits"] == 0
        assert data["store_errors"] == 0
