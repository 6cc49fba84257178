"""Tests for cache key derivation."""

import hashlib

import pytest

from restcache.application.cache import derive_cache_key, sanitize_request_uri
from restcache.domain.exceptions import MissingRequestURI
from restcache.domain.models import RequestContext


class TestSanitizeRequestUri:
    """Test request URI escaping before hashing."""

    def test_plain_path_unchanged(self):
        assert sanitize_request_uri("/wp-json/wp/v2/posts?page=2") == "/wp-json/wp/v2/posts?page=2"

    def test_inner_spaces_are_percent_encoded(self):
        assert sanitize_request_uri("/a b") == "/a%20b"

    def test_existing_escapes_are_kept(self):
        assert sanitize_request_uri("/a%20b") == "/a%20b"

    def test_control_characters_and_outer_whitespace_stripped(self):
        assert sanitize_request_uri("  /posts\r\n\x00 ") == "/posts"

    @pytest.mark.parametrize("uri", [None, "", "   ", "\n\t"])
    def test_blank_input_sanitizes_to_empty(self, uri):
        assert sanitize_request_uri(uri) == ""


class TestDeriveCacheKey:
    """Test the URI to cache key mapping."""

    def test_key_is_prefixed_md5_of_uri(self):
        uri = "/wp-json/wp/v2/posts"
        expected = "rest_api_cache_" + hashlib.md5(uri.encode("utf-8")).hexdigest()
        assert derive_cache_key(uri) == expected

    def test_deterministic(self):
        assert derive_cache_key("/wp-json/wp/v2/posts") == derive_cache_key(
            "/wp-json/wp/v2/posts"
        )

    def test_distinct_uris_give_distinct_keys(self):
        keys = {
            derive_cache_key("/wp-json/wp/v2/posts"),
            derive_cache_key("/wp-json/wp/v2/posts?page=2"),
            derive_cache_key("/wp-json/wp/v2/pages"),
        }
        assert len(keys) == 3

    def test_equivalent_escapes_share_a_key(self):
        assert derive_cache_key("/a b") == derive_cache_key("/a%20b")

    @pytest.mark.parametrize("uri", [None, "", "  "])
    def test_empty_uri_raises(self, uri):
        with pytest.raises(MissingRequestURI) as exc_info:
            derive_cache_key(uri)
        assert exc_info.value.code == "missing_request_uri"

    def test_missing_uri_carries_request_id(self):
        context = RequestContext(request_id="req-1")
        with pytest.raises(MissingRequestURI) as exc_info:
            derive_cache_key("", context=context)
        assert exc_info.value.request_id == "req-1"

    def test_key_transform_receives_key_and_context(self):
        seen = {}

        def salt_by_locale(key, context):
            seen["key"] = key
            return f"{key}_{context.route}"

        context = RequestContext(request_uri="/wp-json/x", route="fr")
        key = derive_cache_key("/wp-json/x", salt_by_locale, context)

        assert key == seen["key"] + "_fr"
        assert seen["key"].startswith("rest_api_cache_")

    def test_empty_transform_result_is_a_derivation_failure(self):
        with pytest.raises(MissingRequestURI):
            derive_cache_key("/wp-json/x", lambda key, context: "")
