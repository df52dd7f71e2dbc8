"""Base class shared by the free extraction tiers."""

import logging
import time
from abc import ABC, abstractmethod

from ..models import ExtractionMethod, ExtractionResult, ParsedRecipe

logger = logging.getLogger(__name__)


def _count_bonus(count: int, bonuses: tuple[tuple[int, float], ...]) -> float:
    """First (minimum, bonus) pair whose minimum the count reaches."""
    for minimum, bonus in bonuses:
        if count >= minimum:
            return bonus
    return 0.0


class BaseExtractor(ABC):
    """
    One tier of the extraction chain.

    Subclasses declare where they sit in the chain (priority, lower runs
    first), how confident a win must be (success_threshold), and how their
    confidence is scored. The pipeline only talks to `can_handle` and
    `extract`, so tiers can be added without touching orchestration.
    """

    name: str
    method: ExtractionMethod
    priority: int
    success_threshold: float

    # Confidence scoring
    base_confidence: float
    max_confidence: float
    ingredient_bonuses: tuple[tuple[int, float], ...] = ((3, 0.15), (1, 0.10))
    step_bonuses: tuple[tuple[int, float], ...] = ((3, 0.10), (1, 0.05))

    not_found_message: str = "No recipe data found"

    @abstractmethod
    def can_handle(self, html: str) -> bool:
        """Cheap textual check run before a full extraction."""

    @abstractmethod
    def build_recipe(self, html: str, url: str) -> ParsedRecipe | None:
        """Build a recipe from the page, or None when nothing recipe-shaped exists."""

    def extract(self, html: str, url: str) -> ExtractionResult:
        """
        Extract a recipe from page HTML.

        Returns a failure without partial data when nothing was found, and a
        failure with partial data when a recipe was found but has no
        ingredients. Exceptions propagate; the pipeline handles them.
        """
        start = time.perf_counter()

        recipe = self.build_recipe(html, url)
        if recipe is None:
            return self.failure(self.not_found_message)

        recipe.confidence = self.score(recipe)

        if not recipe.has_ingredients:
            return self.failure("No ingredients found", recipe)

        processing_time_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Extracted recipe '{recipe.title}' via {self.method.value} "
            f"(confidence: {recipe.confidence:.2f}, {processing_time_ms}ms)"
        )
        return self.success(recipe, processing_time_ms)

    def score(self, recipe: ParsedRecipe) -> float:
        """Confidence from data completeness, capped per tier."""
        score = self.base_confidence

        if recipe.has_title:
            score += 0.1
        if recipe.description:
            score += 0.05

        score += _count_bonus(recipe.ingredient_count, self.ingredient_bonuses)
        score += _count_bonus(recipe.step_count, self.step_bonuses)

        if recipe.prep_time_minutes:
            score += 0.05
        if recipe.cook_time_minutes:
            score += 0.05
        if recipe.servings:
            score += 0.03
        if recipe.image_url:
            score += 0.02

        return round(min(self.max_confidence, score), 4)

    def success(self, recipe: ParsedRecipe, processing_time_ms: int | None = None) -> ExtractionResult:
        return ExtractionResult(
            success=True,
            method=self.method,
            confidence=recipe.confidence,
            recipe=recipe,
            processing_time_ms=processing_time_ms,
        )

    def failure(self, error: str, partial_data: ParsedRecipe | None = None) -> ExtractionResult:
        # Partial confidence is kept so the pipeline can rank salvaged data
        return ExtractionResult(
            success=False,
            method=self.method,
            confidence=partial_data.confidence if partial_data else 0.0,
            error=error,
            partial_data=partial_data,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} priority={self.priority}>"
