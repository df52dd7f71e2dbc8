"""Data models for recipe import."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

UNTITLED_RECIPE = "Untitled Recipe"


class UrlSource(str, Enum):
    """Kind of source a URL points at."""

    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    PDF = "pdf"
    RECIPE_SITE = "recipe_site"
    GENERIC_WEBSITE = "generic_website"

    @property
    def is_social(self) -> bool:
        return self in (UrlSource.INSTAGRAM, UrlSource.FACEBOOK, UrlSource.YOUTUBE, UrlSource.TIKTOK)


class ExtractionMethod(str, Enum):
    """Method used to extract recipe data."""

    JSON_LD = "json_ld"
    MICRODATA = "microdata"
    HEURISTICS = "heuristics"
    AI = "ai"
    MANUAL = "manual"


class RecipeCategory(str, Enum):
    """Normalized recipe category."""

    BREAKFAST = "BREAKFAST"
    BRUNCH = "BRUNCH"
    LUNCH = "LUNCH"
    DINNER = "DINNER"
    MAIN_COURSE = "MAIN_COURSE"
    APPETIZER = "APPETIZER"
    SNACK = "SNACK"
    DESSERT = "DESSERT"
    BEVERAGE = "BEVERAGE"
    SOUP = "SOUP"
    SALAD = "SALAD"
    SIDE_DISH = "SIDE_DISH"
    SAUCE = "SAUCE"
    BREAD = "BREAD"
    BAKING = "BAKING"
    OTHER = "OTHER"


@dataclass
class Ingredient:
    """One ingredient line, split into its parts."""

    name: str
    quantity: float | None = None
    unit: str | None = None
    notes: str | None = None
    optional: bool = False


@dataclass
class Step:
    """One cooking step. `order` is 1-based within its component."""

    order: int
    instruction: str
    duration: int | None = None  # minutes
    tips: str | None = None


@dataclass
class RecipeComponent:
    """A section of a recipe (e.g. "Main", "Sauce")."""

    name: str = "Main"
    ingredients: list[Ingredient] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)


@dataclass
class NutritionInfo:
    """Per-serving nutrition facts, when the source publishes them."""

    calories_per_serving: float | None = None
    protein_grams: float | None = None
    carbs_grams: float | None = None
    fat_grams: float | None = None
    fiber_grams: float | None = None
    sugar_grams: float | None = None
    sodium_mg: float | None = None


@dataclass
class ParsedRecipe:
    """Canonical extraction output."""

    title: str = UNTITLED_RECIPE
    description: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    prep_time_minutes: int | None = None
    cook_time_minutes: int | None = None
    servings: int | None = None
    category: str | None = None
    cuisine: str | None = None
    tags: list[str] = field(default_factory=list)
    components: list[RecipeComponent] = field(default_factory=list)
    confidence: float = 0.0
    source_url: str | None = None
    source_author: str | None = None
    nutrition: NutritionInfo | None = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            self.title = UNTITLED_RECIPE

    @property
    def has_title(self) -> bool:
        return self.title != UNTITLED_RECIPE

    @property
    def ingredient_count(self) -> int:
        return len(self.components[0].ingredients) if self.components else 0

    @property
    def step_count(self) -> int:
        return len(self.components[0].steps) if self.components else 0

    @property
    def has_ingredients(self) -> bool:
        """True when the first component carries at least one ingredient."""
        return self.ingredient_count > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractionResult:
    """
    Result of one extraction attempt (a tier, a source handler, or the pipeline).

    `recipe` is set only on success. `partial_data` may be set on failure so
    the pipeline can compare salvaged data across tiers.
    """

    success: bool
    method: ExtractionMethod
    confidence: float = 0.0
    recipe: ParsedRecipe | None = None
    error: str | None = None
    partial_data: ParsedRecipe | None = None
    requires_manual_input: bool = False
    ai_tokens_used: int | None = None
    processing_time_ms: int | None = None
    fallback_message: str | None = None

    def __post_init__(self) -> None:
        if self.success and self.recipe is None:
            raise ValueError("A successful ExtractionResult needs a recipe")
        self.confidence = min(1.0, max(0.0, self.confidence))

    @property
    def candidate(self) -> ParsedRecipe | None:
        """The recipe data this attempt salvaged, successful or not."""
        return self.recipe or self.partial_data

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SourceDetectionResult:
    """Classification of a URL. Computed once per request."""

    source: UrlSource
    is_known_recipe_site: bool = False
    site_name: str | None = None
