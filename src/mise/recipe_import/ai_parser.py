"""AI fallback - structured recipe parsing with a language model.

The free tiers never call this. It is used for pasted text, social posts,
and websites where every free tier came back inconclusive.
"""

import json
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import BaseModel, Field

from mise.config import settings
from mise.llm import call_llm

from .fetcher import FetchError, PageFetcher
from .models import (
    Ingredient,
    ParsedRecipe,
    RecipeCategory,
    RecipeComponent,
    Step,
    UrlSource,
)
from .normalizer import make_soup, map_category, normalize_text

logger = logging.getLogger(__name__)


class AIExtractionError(Exception):
    """The AI collaborator could not produce a recipe."""


# =============================================================================
# Response models
# =============================================================================


class AIIngredient(BaseModel):
    quantity: float | None = Field(None, description="Numeric amount; fractions as decimals (1/2 = 0.5)")
    unit: str | None = None
    name: str = Field(description="Ingredient name without preparation notes")
    notes: str | None = Field(None, description="Preparation notes, e.g. 'diced'")
    optional: bool = False


class AIStep(BaseModel):
    order: int
    instruction: str
    duration: int | None = Field(None, description="Minutes, if stated")
    tips: str | None = None


class AIComponent(BaseModel):
    name: str = Field("Main", description="Section name, e.g. 'Main', 'Sauce', 'Dough'")
    ingredients: list[AIIngredient] = Field(default_factory=list)
    steps: list[AIStep] = Field(default_factory=list)


class AIRecipe(BaseModel):
    """Structured recipe as returned by the model."""

    title: str
    description: str | None = None
    prep_time_minutes: int | None = None
    cook_time_minutes: int | None = None
    servings: int | None = None
    category: str | None = Field(
        None, description=f"One of: {', '.join(c.value for c in RecipeCategory)}"
    )
    cuisine: str | None = None
    tags: list[str] = Field(default_factory=list)
    components: list[AIComponent] = Field(default_factory=list)
    source_author: str | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="How confident you are this is a real recipe")

    def to_parsed_recipe(self) -> ParsedRecipe:
        """Convert to the pipeline's model, dropping blank entries and renumbering steps."""
        components = []
        for component in self.components:
            ingredients = [
                Ingredient(
                    name=normalize_text(ing.name),
                    quantity=ing.quantity if ing.quantity is None or ing.quantity >= 0 else None,
                    unit=normalize_text(ing.unit) or None,
                    notes=normalize_text(ing.notes) or None,
                    optional=ing.optional,
                )
                for ing in component.ingredients
                if normalize_text(ing.name)
            ]
            ordered = sorted(
                (step for step in component.steps if normalize_text(step.instruction)),
                key=lambda step: step.order,
            )
            steps = [
                Step(
                    order=i,
                    instruction=normalize_text(step.instruction),
                    duration=_non_negative(step.duration),
                    tips=normalize_text(step.tips) or None,
                )
                for i, step in enumerate(ordered, start=1)
            ]
            components.append(
                RecipeComponent(
                    name=normalize_text(component.name) or "Main",
                    ingredients=ingredients,
                    steps=steps,
                )
            )

        return ParsedRecipe(
            title=normalize_text(self.title),
            description=normalize_text(self.description) or None,
            prep_time_minutes=_non_negative(self.prep_time_minutes),
            cook_time_minutes=_non_negative(self.cook_time_minutes),
            servings=_non_negative(self.servings),
            category=_category(self.category),
            cuisine=normalize_text(self.cuisine) or None,
            tags=[normalize_text(tag) for tag in self.tags if normalize_text(tag)],
            components=components,
            confidence=self.confidence,
            source_author=normalize_text(self.source_author) or None,
        )


def _non_negative(value: int | None) -> int | None:
    return value if value is not None and value >= 0 else None


def _category(value: str | None) -> str | None:
    if not value:
        return None
    upper = value.strip().upper()
    if upper in RecipeCategory.__members__:
        return upper
    return map_category(value).value


# =============================================================================
# Prompts
# =============================================================================

TEXT_SYSTEM_PROMPT = """You are a professional recipe parser. Extract structured recipe data from the provided text.

Rules:
- Parse quantities as numbers (convert fractions: 1/2 = 0.5, 1/4 = 0.25)
- Separate ingredient name from preparation notes (e.g., "onion, diced" -> name: "onion", notes: "diced")
- Infer category based on dish type
- Extract or infer cuisine from ingredients/techniques
- If the recipe has distinct sections (e.g., sauce, marinade), create separate components
- If the text does not contain a recipe, return a best-effort structure with confidence 0.3 or lower"""

CAPTION_SYSTEM_PROMPT = """You are a professional recipe parser. Extract a structured recipe from a social media post caption.

Recipe posts often have:
- A recipe title (sometimes in all caps or with emojis)
- Ingredient lists (with quantities)
- Step-by-step instructions
- Tips and serving suggestions

Many recipes have multiple components ("For the dough:", "For the filling:", "Sauce:", ...).
Create a separate component for each section, named after its header.

If the content doesn't contain a recipe, still create a best-effort structure with confidence 0.3 or lower."""

PAGE_SYSTEM_PROMPT = """You are a professional recipe extractor. Extract structured recipe data from the provided webpage content.

The content may be a video description, a food blog, or a recipe website.

Rules:
- Extract as much information as possible from the content
- Parse quantities as numbers (convert fractions: 1/2 = 0.5)
- If no clear recipe is found, return confidence 0 and a minimal structure"""


def page_text(html: str) -> str:
    """Visible text of a page: scripts and styles removed, whitespace collapsed."""
    soup = make_soup(html)
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    return normalize_text(soup.get_text(" "))


def first_json_ld_block(html: str) -> str:
    script = make_soup(html).find("script", attrs={"type": "application/ld+json"})
    return script.get_text().strip() if script is not None else ""


def estimate_tokens(recipe: ParsedRecipe) -> int:
    """Rough usage estimate (~4 characters per token) when the API reports none."""
    return math.ceil(len(json.dumps(recipe.to_dict(), default=str)) / 4)


# =============================================================================
# Collaborator
# =============================================================================


@dataclass
class AIRecipeOutput:
    """A parsed recipe plus what it cost."""

    recipe: ParsedRecipe
    tokens_used: int | None = None


class RecipeAI(ABC):
    """
    Opaque "text or URL in, best-effort recipe out" capability.

    Implementations raise AIExtractionError when they cannot answer.
    """

    @abstractmethod
    async def parse_from_text(
        self,
        text: str,
        *,
        source: UrlSource | None = None,
        author: str | None = None,
    ) -> AIRecipeOutput:
        """Parse arbitrary text (pasted content or a social caption)."""

    @abstractmethod
    async def parse_from_url(self, url: str, *, html: str | None = None) -> AIRecipeOutput:
        """
        Parse whatever recipe the page at `url` describes.

        `html` is the already-fetched page, when the caller has it.
        """


class OpenAIRecipeAI(RecipeAI):
    """RecipeAI backed by OpenAI structured outputs via Instructor."""

    def __init__(self, fetcher: PageFetcher | None = None, page_text_limit: int | None = None):
        self.fetcher = fetcher or PageFetcher()
        self.page_text_limit = page_text_limit or settings.ai_page_text_limit

    async def _call(self, system_prompt: str, user_prompt: str) -> AIRecipeOutput:
        try:
            response = await call_llm(
                response_model=AIRecipe,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
            )
        except Exception as e:
            raise AIExtractionError(f"AI extraction failed: {e}") from e

        recipe = response.output.to_parsed_recipe()
        logger.info(f"AI parsed recipe '{recipe.title}' (confidence: {recipe.confidence:.2f})")
        return AIRecipeOutput(recipe=recipe, tokens_used=response.tokens_used)

    async def parse_from_text(
        self,
        text: str,
        *,
        source: UrlSource | None = None,
        author: str | None = None,
    ) -> AIRecipeOutput:
        logger.info(f"Parsing recipe from text ({len(text)} chars)")

        if source is not None and source.is_social:
            platform = source.value.capitalize()
            user_prompt = f"{platform} post by: {author or 'Unknown'}\n\nCaption:\n{text}"
            return await self._call(CAPTION_SYSTEM_PROMPT, user_prompt)

        return await self._call(TEXT_SYSTEM_PROMPT, text)

    async def parse_from_url(self, url: str, *, html: str | None = None) -> AIRecipeOutput:
        logger.info(f"Parsing recipe from URL with AI: {url}")

        if html is None:
            try:
                html = (await self.fetcher.fetch(url)).html
            except FetchError as e:
                raise AIExtractionError(f"Failed to fetch URL for AI extraction: {e}") from e

        user_prompt = (
            f"URL: {url}\n\n"
            f"JSON-LD Schema (if available):\n{first_json_ld_block(html)}\n\n"
            f"Page Content:\n{page_text(html)[: self.page_text_limit]}"
        )
        output = await self._call(PAGE_SYSTEM_PROMPT, user_prompt)
        output.recipe.source_url = output.recipe.source_url or url
        return output
