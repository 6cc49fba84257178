"""Custom exception hierarchy for RestCache.

Each error carries a stable ``code`` so that the management surface can report
it to callers without leaking internal detail. None of these errors is allowed
to fail the request-serving path; the interceptors recover from all of them.
"""

from typing import Any, Dict, Optional


class RestCacheException(Exception):
    """Base exception for all RestCache-specific exceptions."""

    code = "restcache_error"

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id
        self.details = details or {}


class CacheError(RestCacheException):
    """Base exception for cache-related errors."""

    code = "cache_error"


class MissingRequestURI(CacheError):
    """Raised when a cache key is requested for an empty or absent URI."""

    code = "missing_request_uri"

    def __init__(
        self,
        message: str = "Please provide the Request URI.",
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, request_id, details)


class MissingCacheKey(CacheError):
    """Raised when a key-based operation receives an empty cache key."""

    code = "missing_cache_key"

    def __init__(
        self,
        message: str = "Please provide the Cache Key (Transient Name).",
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, request_id, details)


class StoreUnavailable(CacheError):
    """Raised when the backing store fails or does not answer in time."""

    code = "store_unavailable"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        backend: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, request_id, details)
        self.operation = operation
        self.backend = backend


class ConfigurationError(RestCacheException):
    """Raised when configuration is invalid or missing."""

    code = "configuration_error"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, request_id, details)
        self.config_key = config_key
