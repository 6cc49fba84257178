"""Constants module for RestCache configuration.

Contains the cache key namespace, the exact diagnostic header names emitted to
clients, and the defaults used when no explicit configuration is supplied.
"""

from typing import FrozenSet

# Namespace tag prepended to every derived cache key
CACHE_KEY_PREFIX = "rest_api_cache_"

# Diagnostic response headers (names are case-sensitive on the wire)
HEADER_CACHE_CONTROL = "Cache-Control"
HEADER_CACHE_STATUS = "X-WP-API-CACHE"
HEADER_CACHE_KEY = "X-WP-API-CACHE-KEY"
HEADER_CACHE_TIMEOUT = "X-WP-API-CACHE-TIMEOUT"
HEADER_CACHE_TIMEOUT_DIFF = "X-WP-API-CACHE-TIMEOUT-DIFF"

CACHE_STATUS_CACHED = "Cached"
CACHE_STATUS_NOT_CACHED = "Not Cached"

CACHE_DIAGNOSTIC_HEADERS: FrozenSet[str] = frozenset(
    {
        HEADER_CACHE_STATUS.lower(),
        HEADER_CACHE_KEY.lower(),
        HEADER_CACHE_TIMEOUT.lower(),
        HEADER_CACHE_TIMEOUT_DIFF.lower(),
    }
)

# Headers never replayed from a stored envelope
HOP_BY_HOP_HEADERS: FrozenSet[str] = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "content-length",
        "set-cookie",
        "x-request-id",
        "x-response-time-ms",
    }
)

# Cache defaults
DEFAULT_CACHE_TIMEOUT_SECONDS = 300
DEFAULT_CACHE_MAX_ENTRIES = 1000
DEFAULT_CACHE_CLEANUP_INTERVAL_SECONDS = 60
DEFAULT_STORE_TIMEOUT_SECONDS = 2.0
DEFAULT_REST_PREFIX = "/wp-json"
DEFAULT_CACHE_TIMEZONE = "UTC"

# Absolute expiry rendering, equivalent to PHP's 'F j, Y, g:i A'
EXPIRY_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Relative time units used by the time-remaining header
MINUTE_IN_SECONDS = 60
HOUR_IN_SECONDS = 60 * MINUTE_IN_SECONDS
DAY_IN_SECONDS = 24 * HOUR_IN_SECONDS
WEEK_IN_SECONDS = 7 * DAY_IN_SECONDS
MONTH_IN_SECONDS = 30 * DAY_IN_SECONDS
YEAR_IN_SECONDS = 365 * DAY_IN_SECONDS

# Number of key characters kept when a cache key is written to the logs
LOG_KEY_PREVIEW_CHARS = 24
