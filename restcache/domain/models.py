from dataclasses import dataclass
from enum import StrEnum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import DEFAULT_CACHE_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CacheConfig:
    """Externally owned cache settings, read once per request cycle.

    Attributes:
        disabled: When true no interceptors run and no headers are emitted.
        default_timeout_seconds: TTL applied to newly stored responses.
    """

    disabled: bool = False
    default_timeout_seconds: int = DEFAULT_CACHE_TIMEOUT_SECONDS


class RequestContext(BaseModel):
    """Identity of an inbound request as seen by the cache interceptors.

    Attributes:
        request_uri: Raw request target (path plus query string). ``None`` when
            the host could not supply one; the interceptors then pass through.
        method: HTTP method of the request.
        route: Matched route or path, used for logging only.
        request_id: Correlator generated per HTTP request.
    """

    request_uri: Optional[str] = None
    method: str = "GET"
    route: Optional[str] = None
    request_id: Optional[str] = None


class CachedResponse(BaseModel):
    """Response envelope stored under a cache key.

    Capturing status and headers alongside the body keeps response metadata
    intact when a stored entry is served in place of a fresh one.

    Attributes:
        status_code: HTTP status of the original response.
        media_type: Content type of the body, if known.
        headers: Replayable response headers (lower-cased names).
        body: Raw response body.
    """

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    status_code: int = 200
    media_type: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def is_empty(self) -> bool:
        return not self.body

    @property
    def is_cacheable(self) -> bool:
        return 200 <= self.status_code < 300 and not self.is_empty


class CacheErrorType(StrEnum):
    """Error codes returned to callers of the cache management surface."""

    MISSING_REQUEST_URI = "missing_request_uri"
    MISSING_CACHE_KEY = "missing_cache_key"
    STORE_UNAVAILABLE = "store_unavailable"
    NOT_FOUND = "not_found_error"
    API_ERROR = "api_error"


class ErrorDetail(BaseModel):
    type: CacheErrorType
    message: str


class ErrorResponse(BaseModel):
    type: str = "error"
    error: ErrorDetail


class CacheTimeoutInfo(BaseModel):
    """Expiry details of a stored entry, as reported by the admin surface."""

    key: str
    expires_at: float
    expires_at_formatted: str
    remaining: str
