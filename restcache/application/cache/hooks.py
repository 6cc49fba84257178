"""Named extension points for the response cache.

Each slot is a plain callable with an identity default, so a host application
can override one policy (for example per-locale key salting, or a shorter
shared-cache max age) without touching the others.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from ...domain.models import RequestContext

KeyTransform = Callable[[str, Optional["RequestContext"]], str]
TimeoutOverride = Callable[[int], int]
MaxAgeOverride = Callable[[int], Optional[int]]
ShowKeyHeader = Callable[[bool], bool]


def default_key_transform(key: str, context: Optional["RequestContext"] = None) -> str:
    return key


def default_timeout(timeout: int) -> int:
    return timeout


def default_max_age(timeout: int) -> Optional[int]:
    return timeout


def default_show_key_header(show: bool) -> bool:
    return show


@dataclass
class CacheHooks:
    """Typed callback slots consulted on every request cycle.

    Attributes:
        key_transform: Rewrites the derived cache key.
        timeout_override: Adjusts the TTL used when storing a response.
        max_age_override: Value of ``max-age`` in ``Cache-Control``; ``None``
            suppresses the header.
        s_max_age_override: Value of ``s-maxage`` in ``Cache-Control``;
            ``None`` suppresses the header.
        show_key_header: Decides whether ``X-WP-API-CACHE-KEY`` is emitted.
    """

    key_transform: KeyTransform = default_key_transform
    timeout_override: TimeoutOverride = default_timeout
    max_age_override: MaxAgeOverride = default_max_age
    s_max_age_override: MaxAgeOverride = default_max_age
    show_key_header: ShowKeyHeader = default_show_key_header
