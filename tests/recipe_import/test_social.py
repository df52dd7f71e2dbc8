"""Tests for the social platform and PDF source handlers."""

import asyncio

from mise.recipe_import import AIRecipeOutput, ExtractionMethod, UrlSource
from mise.recipe_import.ai_parser import estimate_tokens
from mise.recipe_import.social import SourceHandlers, ai_result

from conftest import FakeFetcher, FakeRecipeAI, build_recipe


def run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def og_page(**meta) -> str:
    tags = "".join(f'<meta property="og:{key}" content="{value}">' for key, value in meta.items())
    return f"<html><head>{tags}</head><body></body></html>"


class TestAiResult:
    def test_recipe_without_ingredients_is_a_failure(self):
        output = AIRecipeOutput(recipe=build_recipe(ingredients=0, confidence=0.6), tokens_used=50)
        result = ai_result(output, default_confidence=0.8, source_url="https://x.example")

        assert not result.success
        assert result.method == ExtractionMethod.AI
        assert result.requires_manual_input
        assert result.partial_data.source_url == "https://x.example"
        assert result.ai_tokens_used == 50

    def test_tokens_are_estimated_when_unreported(self):
        recipe = build_recipe(confidence=0.9)
        result = ai_result(AIRecipeOutput(recipe=recipe), default_confidence=0.8)

        assert result.ai_tokens_used == estimate_tokens(recipe)
        assert result.ai_tokens_used > 0

    def test_provenance_fills_gaps_only(self):
        recipe = build_recipe(confidence=0.9)
        recipe.image_url = "https://model.example/img.jpg"
        result = ai_result(
            AIRecipeOutput(recipe=recipe),
            default_confidence=0.8,
            source_url="https://post.example",
            source_author="poster",
            image_url="https://oembed.example/thumb.jpg",
        )

        assert result.recipe.image_url == "https://model.example/img.jpg"
        assert result.recipe.source_author == "poster"
        assert result.recipe.source_url == "https://post.example"


class TestInstagram:
    URL = "https://www.instagram.com/p/ABC/"

    def test_crawler_meta_when_oembed_unavailable(self):
        fetcher = FakeFetcher(
            pages={
                self.URL: og_page(
                    description="Lemon cake. 2 cups flour, 1 lemon",
                    title="Chef Bob on Instagram: lemon cake",
                    image="https://cdn.example/cake.jpg",
                    video="https://cdn.example/cake.mp4",
                )
            }
        )
        ai = FakeRecipeAI(text_recipe=build_recipe("Lemon Cake", confidence=0.9))

        result = run(SourceHandlers(ai, fetcher).instagram(self.URL))

        assert result.success
        assert result.confidence == 0.9
        assert ai.text_calls[0]["author"] == "Chef Bob"
        assert ai.text_calls[0]["source"] == UrlSource.INSTAGRAM
        assert result.recipe.image_url == "https://cdn.example/cake.jpg"
        assert result.recipe.video_url == "https://cdn.example/cake.mp4"

    def test_oembed_caption(self):
        fetcher = FakeFetcher(
            json_docs={
                "https://api.instagram.com/oembed": {
                    "html": (
                        '<blockquote class="instagram-media"><div>'
                        "<p>Pesto &amp; pasta: 1 cup basil</p></div></blockquote>"
                    ),
                    "author_name": "chef_ana",
                    "thumbnail_url": "https://cdn.example/pesto.jpg",
                }
            }
        )
        ai = FakeRecipeAI(text_recipe=build_recipe("Pesto Pasta", confidence=0.9))

        result = run(SourceHandlers(ai, fetcher).instagram(self.URL))

        assert result.success
        assert ai.text_calls[0]["text"] == "Pesto & pasta: 1 cup basil"
        assert ai.text_calls[0]["author"] == "chef_ana"
        assert fetcher.fetched == []
        assert result.recipe.image_url == "https://cdn.example/pesto.jpg"

    def test_no_caption_hands_url_to_ai(self):
        ai = FakeRecipeAI(url_recipe=build_recipe("Mystery", confidence=0.0))

        result = run(SourceHandlers(ai, FakeFetcher()).instagram(self.URL))

        assert result.success
        assert result.confidence == 0.8
        assert ai.url_calls == [{"url": self.URL, "html": None}]
        assert ai.text_calls == []


class TestYouTube:
    def test_video_url_is_the_page(self):
        url = "https://www.youtube.com/watch?v=abc"
        ai = FakeRecipeAI(url_recipe=build_recipe("Ramen", confidence=0.0))

        result = run(SourceHandlers(ai, FakeFetcher()).handle(url, UrlSource.YOUTUBE))

        assert result.success
        assert result.confidence == 0.7
        assert result.recipe.video_url == url


class TestFacebook:
    URL = "https://www.facebook.com/chef/posts/123"

    def test_mobile_page_meta(self):
        fetcher = FakeFetcher(
            pages={
                "https://m.facebook.com/chef/posts/123": og_page(
                    description="Tacos: 1 lb beef, 8 tortillas",
                    title="Taco Tuesday Club",
                    image="https://cdn.example/tacos.jpg",
                )
            }
        )
        ai = FakeRecipeAI(text_recipe=build_recipe("Tacos", confidence=0.0))

        result = run(SourceHandlers(ai, fetcher).facebook(self.URL))

        assert result.success
        assert result.confidence == 0.7
        assert result.recipe.source_author == "Taco Tuesday Club"
        assert result.recipe.image_url == "https://cdn.example/tacos.jpg"
        assert ai.text_calls[0]["source"] == UrlSource.FACEBOOK

    def test_oembed_fallback(self):
        fetcher = FakeFetcher(
            json_docs={
                "https://www.facebook.com/plugins/post/oembed.json/": {
                    "html": "<div><p>Chili: 1 can beans, 1 lb beef</p></div>",
                    "author_name": "Chili Fans",
                }
            }
        )
        ai = FakeRecipeAI(text_recipe=build_recipe("Chili", confidence=0.0))

        result = run(SourceHandlers(ai, fetcher).facebook(self.URL))

        assert result.success
        assert result.confidence == 0.6
        assert ai.text_calls[0]["text"] == "Chili: 1 can beans, 1 lb beef"

    def test_private_post(self):
        result = run(SourceHandlers(FakeRecipeAI(), FakeFetcher()).facebook(self.URL))

        assert not result.success
        assert result.method == ExtractionMethod.MANUAL
        assert result.requires_manual_input
        assert "private" in result.error


class TestTikTok:
    URL = "https://www.tiktok.com/@chef/video/1"

    def test_oembed_title_is_the_caption(self):
        fetcher = FakeFetcher(
            json_docs={
                "https://www.tiktok.com/oembed": {
                    "title": "Easy &amp; quick pasta: 200g pasta, 1 jar pesto",
                    "author_name": "pastaking",
                    "thumbnail_url": "https://cdn.example/p.jpg",
                }
            }
        )
        ai = FakeRecipeAI(text_recipe=build_recipe("Pesto Pasta", confidence=0.0))

        result = run(SourceHandlers(ai, fetcher).tiktok(self.URL))

        assert result.success
        assert result.confidence == 0.6
        assert ai.text_calls[0]["text"] == "Easy & quick pasta: 200g pasta, 1 jar pesto"
        assert result.recipe.source_author == "pastaking"

    def test_no_oembed(self):
        result = run(SourceHandlers(FakeRecipeAI(), FakeFetcher()).tiktok(self.URL))

        assert not result.success
        assert result.error == "Could not extract content from TikTok."


def test_pdf_is_manual():
    result = run(SourceHandlers(FakeRecipeAI(), FakeFetcher()).handle("https://x.example/a.pdf", UrlSource.PDF))

    assert not result.success
    assert result.method == ExtractionMethod.MANUAL
    assert result.requires_manual_input
