"""Tests for flowmap.services.urls."""

import pytest

from flowmap.errors import InvalidUrlError
from flowmap.services.urls import is_internal, normalize_base_url, page_id, resolve_url


class TestNormalizeBaseUrl:
    def test_strips_path_query_and_fragment(self):
        assert normalize_base_url("https://example.com/blog/post?x=1#top") == "https://example.com"

    def test_keeps_port(self):
        assert normalize_base_url("http://localhost:8000/app") == "http://localhost:8000"

    @pytest.mark.parametrize("url", ["example.com", "ftp://example.com", "https://", ""])
    def test_rejects_malformed_urls(self, url):
        with pytest.raises(InvalidUrlError):
            normalize_base_url(url)

    def test_invalid_url_is_a_value_error(self):
        with pytest.raises(ValueError):
            normalize_base_url("not a url")


class TestResolveUrl:
    def test_resolves_relative_against_page(self):
        assert resolve_url("team", "https://example.com/about/") == "https://example.com/about/team"

    def test_drops_fragment(self):
        assert resolve_url("/docs#intro", "https://example.com/") == "https://example.com/docs"

    def test_bare_host_gets_root_path(self):
        assert resolve_url("https://example.com", "https://example.com/a") == "https://example.com/"

    @pytest.mark.parametrize(
        "href", ["#top", "javascript:void(0)", "mailto:hi@example.com", "tel:+123", "  "]
    )
    def test_ignores_non_page_targets(self, href):
        assert resolve_url(href, "https://example.com/") is None


class TestPageId:
    def test_root_is_home(self):
        assert page_id("https://example.com/") == "home"

    def test_path_becomes_slug(self):
        assert page_id("https://example.com/blog/post-1/") == "blog_post_1"


class TestIsInternal:
    def test_same_host_different_scheme(self):
        assert is_internal("http://example.com/a", "example.com")

    def test_other_host(self):
        assert not is_internal("https://cdn.example.com/a", "example.com")
