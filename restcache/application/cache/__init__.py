"""Response cache: key derivation, store protocol and dispatch interceptors."""

from .hooks import CacheHooks
from .keys import derive_cache_key, sanitize_request_uri
from .models import CacheEntry, CacheOutcome
from .response_cache import ResponseCache
from .statistics import CacheStatistics
from .store import CacheStore

__all__ = [
    "CacheEntry",
    "CacheHooks",
    "CacheOutcome",
    "CacheStatistics",
    "CacheStore",
    "ResponseCache",
    "derive_cache_key",
    "sanitize_request_uri",
]
