"""Main recipe extraction orchestration.

Extraction pipeline:
1. Detect the source type from the URL (no network)
2. Social platforms and PDFs go straight to their source handler
3. Websites are fetched once, then run through the free tiers in priority
   order (JSON-LD, Microdata/RDFa, HTML heuristics). The first tier that
   clears its own threshold wins.
4. Otherwise the best partial result is used if it is good enough
5. Otherwise the AI reads the page (paid)
6. Otherwise the caller gets a manual-entry result with whatever was salvaged
"""

import logging
import re
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any
from urllib.parse import urlparse

from mise.config import settings

from .ai_parser import OpenAIRecipeAI, RecipeAI
from .extractors import BaseExtractor, default_extractors
from .fetcher import FetchError, PageFetcher, is_login_page
from .import_log import ImportLogger, ImportLogRecord
from .models import ExtractionMethod, ExtractionResult, ParsedRecipe, SourceDetectionResult, UrlSource
from .social import SourceHandlers, ai_result
from .source_detector import detect_source, get_known_recipe_sites

logger = logging.getLogger(__name__)

# Default fallback message when all extraction methods fail
DEFAULT_FALLBACK_MESSAGE = (
    "Copy the recipe text from the website and paste it in. "
    "Mise can turn pasted text into a structured recipe."
)
LOGIN_FALLBACK_MESSAGE = (
    "This page appears to require a login or subscription. "
    "Copy the recipe text and paste it in instead."
)

NO_RECIPE_ERROR = "Could not extract a recipe from this URL"
TIER_SKIPPED_ERROR = "Page has no markup this tier reads"


class PipelineState(str, Enum):
    """Where a single extraction run currently is."""

    DETECTING = "detecting"
    FETCHING = "fetching"
    TIER = "tier"
    PARTIAL_DECISION = "partial_decision"
    AI_FALLBACK = "ai_fallback"
    SOURCE_HANDLER = "source_handler"
    DONE = "done"


@dataclass
class TierAttempt:
    """Telemetry for one tier (or AI) attempt."""

    tier: str
    method: str
    success: bool
    confidence: float
    duration_ms: int
    error: str | None = None
    skipped: bool = False


@dataclass
class PipelineRun:
    """
    Request-scoped state for one extraction.

    Nothing here outlives the request; concurrent requests never share a run.
    """

    url: str
    state: PipelineState = PipelineState.DETECTING
    detection: SourceDetectionResult | None = None
    trace: list[str] = field(default_factory=list)
    attempts: list[TierAttempt] = field(default_factory=list)
    best_partial: ParsedRecipe | None = None
    best_partial_confidence: float = 0.0
    best_partial_method: ExtractionMethod | None = None
    started: float = field(default_factory=time.perf_counter)

    def __post_init__(self) -> None:
        self.trace.append(self.state.value)

    def transition(self, state: PipelineState, label: str | None = None) -> None:
        self.state = state
        step = f"{state.value}:{label}" if label else state.value
        self.trace.append(step)
        logger.debug(f"[{self.url}] -> {step}")

    def consider_partial(self, result: ExtractionResult) -> bool:
        """
        Keep a failed attempt's salvaged data if it beats the best seen so far.

        Only partial_data is ranked; a tier that succeeded below its own
        threshold is not a partial. Ties keep the earlier tier.
        """
        partial = result.partial_data
        if partial is None:
            return False
        if self.best_partial is not None and result.confidence <= self.best_partial_confidence:
            return False

        self.best_partial = partial
        self.best_partial_confidence = result.confidence
        self.best_partial_method = result.method
        logger.info(f"Retained partial result from {result.method.value} (confidence: {result.confidence:.2f})")
        return True

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)

    def attempt_dicts(self) -> list[dict[str, Any]]:
        return [asdict(attempt) for attempt in self.attempts]


class RecipeImportPipeline:
    """
    Tiered recipe extraction.

    All collaborators can be injected. Defaults read from settings.
    """

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        ai: RecipeAI | None = None,
        extractors: list[BaseExtractor] | None = None,
        import_logger: ImportLogger | None = None,
        partial_accept_confidence: float | None = None,
        ai_min_confidence: float | None = None,
    ):
        self.fetcher = fetcher or PageFetcher()
        self.ai = ai or OpenAIRecipeAI(fetcher=self.fetcher)
        extractors = default_extractors() if extractors is None else extractors
        self.extractors = sorted(extractors, key=lambda extractor: extractor.priority)
        self.handlers = SourceHandlers(ai=self.ai, fetcher=self.fetcher)
        self.import_logger = import_logger or ImportLogger()
        self.partial_accept_confidence = (
            settings.partial_accept_confidence if partial_accept_confidence is None else partial_accept_confidence
        )
        self.ai_min_confidence = settings.ai_min_confidence if ai_min_confidence is None else ai_min_confidence

    # =========================================================================
    # Entry points
    # =========================================================================

    async def extract_from_url(
        self,
        url: str,
        user_id: str | None = None,
        fallback_content: str | None = None,
    ) -> ExtractionResult:
        """
        Extract a recipe from a URL.

        Args:
            url: The page, post, or document to import
            user_id: Recorded with the import log, if known
            fallback_content: Text the caller already copied from the page;
                parsed directly when URL extraction fails

        Returns:
            ExtractionResult. Failures are results, not exceptions.
        """
        run = PipelineRun(url=url)
        logger.info(f"Starting extraction for URL: {url}")

        detection = detect_source(url)
        run.detection = detection
        site = f" ({detection.site_name})" if detection.site_name else ""
        logger.info(f"Source detected: {detection.source.value}{site}")

        if detection.source.is_social or detection.source == UrlSource.PDF:
            result = await self._run_source_handler(url, detection, run)
        else:
            result = await self._extract_from_website(url, run)

        if not result.success and fallback_content and fallback_content.strip():
            logger.info("URL extraction failed, parsing supplied fallback content")
            result = await self.parse_content(fallback_content, source_url=url)

        run.transition(PipelineState.DONE)
        result.processing_time_ms = run.elapsed_ms()
        if result.requires_manual_input and not result.fallback_message:
            result.fallback_message = DEFAULT_FALLBACK_MESSAGE

        logger.info(
            f"Extraction {'succeeded' if result.success else 'failed'} for {url} via "
            f"{result.method.value} (confidence: {result.confidence:.2f}, {result.processing_time_ms}ms)"
        )

        self.import_logger.log(
            ImportLogRecord.from_result(
                url,
                detection,
                result,
                user_id=user_id,
                attempts=run.attempt_dicts(),
            )
        )
        return result

    async def parse_content(
        self,
        content: str,
        source_url: str | None = None,
        source_author: str | None = None,
        image_url: str | None = None,
    ) -> ExtractionResult:
        """
        Parse pasted recipe text. Always uses the AI; free tiers need HTML.

        Provenance arguments override whatever the model inferred.
        """
        start = time.perf_counter()
        logger.info(f"Parsing content directly ({len(content)} chars)")

        try:
            output = await self.ai.parse_from_text(content)
        except Exception as e:
            logger.warning(f"Content parsing failed: {e}")
            result = ExtractionResult(
                success=False,
                method=ExtractionMethod.AI,
                error=str(e) or "Content parsing failed",
                requires_manual_input=True,
            )
        else:
            result = ai_result(output, default_confidence=0.8, source_url=source_url)
            recipe = result.candidate
            if source_author:
                recipe.source_author = source_author
            if image_url:
                recipe.image_url = image_url

        result.processing_time_ms = int((time.perf_counter() - start) * 1000)
        if result.requires_manual_input and not result.fallback_message:
            result.fallback_message = DEFAULT_FALLBACK_MESSAGE
        return result

    def detect_source(self, url: str) -> SourceDetectionResult:
        return detect_source(url)

    def known_sites(self) -> list[dict[str, str]]:
        return get_known_recipe_sites()

    # =========================================================================
    # Source handlers (social, PDF)
    # =========================================================================

    async def _run_source_handler(
        self,
        url: str,
        detection: SourceDetectionResult,
        run: PipelineRun,
    ) -> ExtractionResult:
        run.transition(PipelineState.SOURCE_HANDLER, detection.source.value)
        start = time.perf_counter()
        try:
            result = await self.handlers.handle(url, detection.source)
        except Exception as e:
            logger.error(f"{detection.source.value} extraction failed for {url}: {e}")
            result = ExtractionResult(
                success=False,
                method=ExtractionMethod.AI,
                error=str(e) or f"{detection.source.value} extraction failed",
                requires_manual_input=True,
            )

        self._record(run, detection.source.value, result, start)
        if not result.success:
            result.requires_manual_input = True
        return result

    # =========================================================================
    # Websites
    # =========================================================================

    async def _extract_from_website(self, url: str, run: PipelineRun) -> ExtractionResult:
        run.transition(PipelineState.FETCHING)
        try:
            page = await self.fetcher.fetch(url)
        except FetchError as e:
            # Fatal for the website path: no tiers, no AI
            logger.warning(f"Fetch failed for {url}: {e}")
            return ExtractionResult(
                success=False,
                method=ExtractionMethod.MANUAL,
                error=str(e),
                requires_manual_input=True,
            )

        html = page.html

        for extractor in self.extractors:
            result = self._run_tier(extractor, html, url, run)
            if result is None:
                continue

            if result.success and result.confidence >= extractor.success_threshold:
                logger.info(f"{extractor.name} extraction successful (confidence: {result.confidence:.2f})")
                return result

            run.consider_partial(result)

        run.transition(PipelineState.PARTIAL_DECISION)
        if run.best_partial is not None and run.best_partial_confidence >= self.partial_accept_confidence:
            logger.info(f"Using best partial result (confidence: {run.best_partial_confidence:.2f})")
            return self._partial_result(run, html)

        run.transition(PipelineState.AI_FALLBACK)
        return await self._ai_fallback(url, html, run)

    def _run_tier(
        self, extractor: BaseExtractor, html: str, url: str, run: PipelineRun
    ) -> ExtractionResult | None:
        """
        Run one tier. Exceptions from can_handle or extract become that tier's failure.

        Returns None when the tier does not apply to the page.
        """
        start = time.perf_counter()
        try:
            if not extractor.can_handle(html):
                logger.debug(f"{extractor.name} cannot handle page, skipping")
                self._record(
                    run,
                    extractor.name,
                    ExtractionResult(success=False, method=extractor.method, error=TIER_SKIPPED_ERROR),
                    start,
                    skipped=True,
                )
                return None

            run.transition(PipelineState.TIER, extractor.name)
            logger.info(f"Attempting {extractor.name} extraction (priority {extractor.priority})...")
            result = extractor.extract(html, url)
        except Exception as e:
            logger.warning(f"{extractor.name} extraction raised: {e}")
            result = ExtractionResult(
                success=False,
                method=extractor.method,
                error=str(e) or f"{extractor.name} extraction failed",
            )
        self._record(run, extractor.name, result, start)
        return result

    def _partial_result(self, run: PipelineRun, html: str) -> ExtractionResult:
        partial = run.best_partial
        method = run.best_partial_method or ExtractionMethod.HEURISTICS

        if partial.has_ingredients:
            return ExtractionResult(
                success=True,
                method=method,
                confidence=run.best_partial_confidence,
                recipe=partial,
            )

        return ExtractionResult(
            success=False,
            method=method,
            confidence=run.best_partial_confidence,
            error="Found partial recipe data but no ingredients",
            partial_data=partial,
            requires_manual_input=True,
            fallback_message=self._fallback_message(html),
        )

    async def _ai_fallback(self, url: str, html: str, run: PipelineRun) -> ExtractionResult:
        logger.info("Falling back to AI extraction...")
        start = time.perf_counter()
        error = NO_RECIPE_ERROR
        tokens_used = None

        try:
            output = await self.ai.parse_from_url(url, html=html)
        except Exception as e:
            logger.warning(f"AI extraction failed for {url}: {e}")
            error = str(e) or error
            self._record(
                run,
                "AI",
                ExtractionResult(success=False, method=ExtractionMethod.AI, error=error),
                start,
            )
        else:
            result = ai_result(output, default_confidence=0.8, source_url=url)
            self._record(run, "AI", result, start)
            tokens_used = result.ai_tokens_used

            if result.success and result.confidence >= self.ai_min_confidence:
                return result

            run.consider_partial(result)
            error = result.error or f"AI confidence too low ({result.confidence:.2f})"

        return ExtractionResult(
            success=False,
            method=ExtractionMethod.AI,
            confidence=run.best_partial_confidence,
            error=error,
            partial_data=run.best_partial,
            requires_manual_input=True,
            ai_tokens_used=tokens_used,
            fallback_message=self._fallback_message(html),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _fallback_message(html: str) -> str:
        return LOGIN_FALLBACK_MESSAGE if is_login_page(html) else DEFAULT_FALLBACK_MESSAGE

    @staticmethod
    def _record(
        run: PipelineRun, tier: str, result: ExtractionResult, start: float, skipped: bool = False
    ) -> None:
        run.attempts.append(
            TierAttempt(
                tier=tier,
                method=result.method.value,
                success=result.success,
                confidence=result.confidence,
                duration_ms=int((time.perf_counter() - start) * 1000),
                error=result.error,
                skipped=skipped,
            )
        )


# =============================================================================
# Module-level helpers
# =============================================================================


@lru_cache
def get_default_pipeline() -> RecipeImportPipeline:
    """Process-wide pipeline built from settings."""
    return RecipeImportPipeline()


async def extract_recipe(url: str, user_id: str | None = None) -> ExtractionResult:
    """
    Extract recipe from URL using the best available method.

    Invalid URLs fail fast without touching the network.
    """
    validation_error = validate_url(url)
    if validation_error:
        return ExtractionResult(
            success=False,
            method=ExtractionMethod.MANUAL,
            error=validation_error,
            requires_manual_input=True,
            fallback_message=DEFAULT_FALLBACK_MESSAGE,
        )
    return await get_default_pipeline().extract_from_url(url.strip(), user_id=user_id)


def validate_url(url: str) -> str | None:
    """
    Validate URL format.

    Returns error message if invalid, None if valid.
    """
    if not url or not url.strip():
        return "URL is required"

    url = url.strip()

    # Basic URL pattern check
    if not re.match(r"^https?://", url, re.IGNORECASE):
        return "URL must start with http:// or https://"

    try:
        parsed = urlparse(url)
        if not parsed.netloc or not parsed.hostname:
            return "Invalid URL format"
    except ValueError:
        return "Invalid URL format"

    return None
