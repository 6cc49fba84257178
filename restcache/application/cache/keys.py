"""Cache key derivation from request URIs."""

import hashlib
import re
from typing import Optional
from urllib.parse import quote

from .hooks import KeyTransform
from ...constants import CACHE_KEY_PREFIX
from ...domain.exceptions import MissingRequestURI
from ...domain.models import RequestContext

# Characters kept verbatim in a request target; everything else is percent-encoded
_URI_SAFE_CHARS = "/?#[]@!$&'()*+,;=:%~-._"
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_request_uri(request_uri: Optional[str]) -> str:
    """Escape a raw request target the way it is escaped before hashing.

    Control characters and surrounding whitespace are stripped and characters outside the
    URL safe set are percent-encoded. Existing escapes are left untouched so
    that ``/a%20b`` and ``/a b`` resolve to the same key.
    """
    if not request_uri:
        return ""
    cleaned = _CONTROL_CHARS.sub("", request_uri).strip()
    return quote(cleaned, safe=_URI_SAFE_CHARS)


def derive_cache_key(
    request_uri: Optional[str],
    key_transform: Optional[KeyTransform] = None,
    context: Optional[RequestContext] = None,
) -> str:
    """Map a request URI to its cache key.

    Args:
        request_uri: Raw request target (path plus query string)
        key_transform: Optional policy that rewrites the derived key
        context: Request context handed to ``key_transform``

    Returns:
        ``"rest_api_cache_" + md5(sanitized_uri)``, after ``key_transform``

    Raises:
        MissingRequestURI: If the URI is empty after sanitization, or the
            transform produced an empty key
    """
    sanitized = sanitize_request_uri(request_uri)
    if not sanitized:
        raise MissingRequestURI(
            request_id=context.request_id if context else None,
        )

    cache_key = CACHE_KEY_PREFIX + hashlib.md5(sanitized.encode("utf-8")).hexdigest()

    if key_transform is not None:
        cache_key = key_transform(cache_key, context)
        if not cache_key:
            raise MissingRequestURI(
                "Cache key transform returned an empty key.",
                request_id=context.request_id if context else None,
                details={"request_uri": sanitized},
            )

    return cache_key
