"""Source-specific handlers for social platforms and PDFs.

These sources skip the free tiers entirely: their pages carry no recipe
markup, so the caption (or the page itself) goes straight to the AI.
"""

import logging
import re
from urllib.parse import quote, urlparse

from .ai_parser import AIRecipeOutput, RecipeAI, estimate_tokens
from .fetcher import CRAWLER_USER_AGENT, MOBILE_USER_AGENT, FetchError, PageFetcher
from .models import ExtractionMethod, ExtractionResult, UrlSource
from .normalizer import decode_html_entities, element_text, find_meta_content, make_soup, strip_tags

logger = logging.getLogger(__name__)

INSTAGRAM_OEMBED_URL = "https://api.instagram.com/oembed?url={url}"
FACEBOOK_OEMBED_URL = "https://www.facebook.com/plugins/post/oembed.json/?url={url}"
TIKTOK_OEMBED_URL = "https://www.tiktok.com/oembed?url={url}"

# Author column limit in the import log table
MAX_AUTHOR_LENGTH = 500

_ON_INSTAGRAM_RE = re.compile(r"^(.+?)\s+on\s+Instagram", re.IGNORECASE)


def _quoted(url: str) -> str:
    return quote(url, safe="")


def _manual_failure(error: str) -> ExtractionResult:
    return ExtractionResult(
        success=False,
        method=ExtractionMethod.MANUAL,
        error=error,
        requires_manual_input=True,
    )


def ai_result(
    output: AIRecipeOutput,
    *,
    default_confidence: float,
    source_url: str | None = None,
    source_author: str | None = None,
    image_url: str | None = None,
    video_url: str | None = None,
) -> ExtractionResult:
    """
    Wrap an AI answer as an ExtractionResult.

    Provenance passed in fills gaps without overwriting what the model found,
    except source_url which always reflects the request. A recipe without
    ingredients is reported as a failure carrying it as partial data.
    """
    recipe = output.recipe
    if source_url:
        recipe.source_url = source_url
    recipe.source_author = recipe.source_author or source_author
    recipe.image_url = recipe.image_url or image_url
    recipe.video_url = recipe.video_url or video_url
    recipe.confidence = recipe.confidence or default_confidence

    tokens = output.tokens_used if output.tokens_used is not None else estimate_tokens(recipe)

    if not recipe.has_ingredients:
        return ExtractionResult(
            success=False,
            method=ExtractionMethod.AI,
            confidence=recipe.confidence,
            error="AI could not find any ingredients",
            partial_data=recipe,
            requires_manual_input=True,
            ai_tokens_used=tokens,
        )

    return ExtractionResult(
        success=True,
        method=ExtractionMethod.AI,
        confidence=recipe.confidence,
        recipe=recipe,
        ai_tokens_used=tokens,
    )


class SourceHandlers:
    """
    Per-platform extraction for sources that bypass the free tiers.

    Exceptions from the AI propagate; the pipeline converts them to failures.
    """

    def __init__(self, ai: RecipeAI, fetcher: PageFetcher):
        self.ai = ai
        self.fetcher = fetcher

    async def handle(self, url: str, source: UrlSource) -> ExtractionResult:
        handlers = {
            UrlSource.INSTAGRAM: self.instagram,
            UrlSource.YOUTUBE: self.youtube,
            UrlSource.FACEBOOK: self.facebook,
            UrlSource.TIKTOK: self.tiktok,
            UrlSource.PDF: self.pdf,
        }
        handler = handlers.get(source)
        if handler is None:
            raise ValueError(f"No source handler for {source.value}")
        return await handler(url)

    # =========================================================================
    # Instagram
    # =========================================================================

    async def instagram(self, url: str) -> ExtractionResult:
        """Caption from oEmbed, else crawler-visible og meta, else let the AI read the page."""
        logger.info("Extracting from Instagram...")

        caption = ""
        author = None
        thumbnail = None
        video_url = None

        oembed = await self.fetcher.fetch_json(INSTAGRAM_OEMBED_URL.format(url=_quoted(url)))
        if oembed:
            caption = element_text(make_soup(oembed.get("html")).find("p"))
            author = oembed.get("author_name") or None
            thumbnail = oembed.get("thumbnail_url") or None

        if not caption:
            try:
                page = await self.fetcher.fetch(url, headers={"User-Agent": CRAWLER_USER_AGENT})
            except FetchError as e:
                logger.warning(f"Direct Instagram fetch failed: {e}")
            else:
                caption = find_meta_content(page.html, "og:description") or ""
                title = find_meta_content(page.html, "og:title")
                if title and not author:
                    match = _ON_INSTAGRAM_RE.match(title)
                    author = (match.group(1) if match else title)[:MAX_AUTHOR_LENGTH]
                thumbnail = thumbnail or find_meta_content(page.html, "og:image")
                video_url = find_meta_content(page.html, "og:video") or find_meta_content(
                    page.html, "og:video:url"
                )

        if caption:
            logger.info(f"Instagram caption extracted ({len(caption)} chars)")
            output = await self.ai.parse_from_text(caption, source=UrlSource.INSTAGRAM, author=author)
        else:
            logger.info("No Instagram caption found, handing the URL to the AI")
            output = await self.ai.parse_from_url(url)

        return ai_result(
            output,
            default_confidence=0.8,
            source_url=url,
            source_author=author,
            image_url=thumbnail,
            video_url=video_url,
        )

    # =========================================================================
    # YouTube
    # =========================================================================

    async def youtube(self, url: str) -> ExtractionResult:
        """The video description is on the page; let the AI read it."""
        logger.info("Extracting from YouTube...")
        output = await self.ai.parse_from_url(url)
        return ai_result(output, default_confidence=0.7, source_url=url, video_url=url)

    # =========================================================================
    # Facebook
    # =========================================================================

    async def facebook(self, url: str) -> ExtractionResult:
        """Mobile page og meta first (simpler HTML), then the post oEmbed."""
        logger.info("Extracting from Facebook...")

        mobile_url = urlparse(url)._replace(netloc="m.facebook.com").geturl()
        try:
            page = await self.fetcher.fetch(mobile_url, headers={"User-Agent": MOBILE_USER_AGENT})
        except FetchError as e:
            logger.warning(f"Facebook mobile fetch failed, trying oEmbed: {e}")
        else:
            caption = find_meta_content(page.html, "og:description")
            if caption:
                logger.info(f"Extracted Facebook caption ({len(caption)} chars)")
                author = find_meta_content(page.html, "og:title")
                output = await self.ai.parse_from_text(caption, source=UrlSource.FACEBOOK, author=author)
                return ai_result(
                    output,
                    default_confidence=0.7,
                    source_url=url,
                    source_author=author,
                    image_url=find_meta_content(page.html, "og:image"),
                )

        oembed = await self.fetcher.fetch_json(FACEBOOK_OEMBED_URL.format(url=_quoted(url)))
        text = strip_tags(oembed.get("html")) if oembed else ""
        if text:
            author = oembed.get("author_name") or None
            output = await self.ai.parse_from_text(text, source=UrlSource.FACEBOOK, author=author)
            return ai_result(output, default_confidence=0.6, source_url=url, source_author=author)

        return _manual_failure(
            "Could not extract content from Facebook. The post may be private or require login."
        )

    # =========================================================================
    # TikTok
    # =========================================================================

    async def tiktok(self, url: str) -> ExtractionResult:
        """TikTok oEmbed titles are usually the full caption."""
        logger.info("Extracting from TikTok...")

        oembed = await self.fetcher.fetch_json(TIKTOK_OEMBED_URL.format(url=_quoted(url)))
        caption = decode_html_entities(oembed.get("title") or "").strip() if oembed else ""
        if caption:
            author = oembed.get("author_name") or None
            output = await self.ai.parse_from_text(caption, source=UrlSource.TIKTOK, author=author)
            return ai_result(
                output,
                default_confidence=0.6,
                source_url=url,
                source_author=author,
                image_url=oembed.get("thumbnail_url") or None,
            )

        return _manual_failure("Could not extract content from TikTok.")

    # =========================================================================
    # PDF
    # =========================================================================

    async def pdf(self, url: str) -> ExtractionResult:
        logger.info(f"PDF import requested, manual entry required: {url}")
        return _manual_failure("PDF extraction not yet implemented. Please copy and paste the recipe text.")
