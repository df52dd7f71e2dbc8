"""Tests for URL source detection."""

import pytest

from mise.recipe_import.models import UrlSource
from mise.recipe_import.source_detector import (
    KNOWN_RECIPE_SITES,
    detect_source,
    get_known_recipe_sites,
)


class TestDetectSource:
    @pytest.mark.parametrize(
        "url,source",
        [
            ("https://www.instagram.com/p/ABC123/", UrlSource.INSTAGRAM),
            ("https://instagr.am/p/ABC123/", UrlSource.INSTAGRAM),
            ("https://m.facebook.com/story.php?id=1", UrlSource.FACEBOOK),
            ("https://fb.watch/abc/", UrlSource.FACEBOOK),
            ("https://youtu.be/dQw4w9WgXcQ", UrlSource.YOUTUBE),
            ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", UrlSource.YOUTUBE),
            ("https://www.tiktok.com/@chef/video/123", UrlSource.TIKTOK),
        ],
    )
    def test_social_platforms(self, url, source):
        result = detect_source(url)
        assert result.source == source
        assert result.is_known_recipe_site is False

    def test_pdf(self):
        assert detect_source("https://example.com/files/Lasagna.PDF").source == UrlSource.PDF

    def test_known_recipe_site(self):
        result = detect_source("https://www.allrecipes.com/recipe/12345/pancakes/")
        assert result.source == UrlSource.RECIPE_SITE
        assert result.is_known_recipe_site is True
        assert result.site_name == "AllRecipes"

    def test_known_recipe_site_subdomain(self):
        result = detect_source("https://cooking.nytimes.com/recipes/1018684")
        assert result.site_name == "NYT Cooking"

    def test_lookalike_domain_is_not_social(self):
        assert detect_source("https://notinstagram.com/p/1").source == UrlSource.GENERIC_WEBSITE

    def test_generic_website(self):
        result = detect_source("https://myfoodblog.example/best-chili")
        assert result.source == UrlSource.GENERIC_WEBSITE
        assert result.site_name is None

    def test_unparseable_url_never_raises(self):
        assert detect_source("http://[::1").source == UrlSource.GENERIC_WEBSITE
        assert detect_source("").source == UrlSource.GENERIC_WEBSITE


def test_known_sites_registry():
    sites = get_known_recipe_sites()
    assert len(sites) == len(KNOWN_RECIPE_SITES)
    assert {"domain": "seriouseats.com", "name": "Serious Eats"} in sites
    with pytest.raises(TypeError):
        KNOWN_RECIPE_SITES["example.com"] = "Example"
