"""Recipe import module for extracting recipes from external URLs and pasted text."""

from .ai_parser import AIExtractionError, AIRecipeOutput, OpenAIRecipeAI, RecipeAI
from .extractor import (
    DEFAULT_FALLBACK_MESSAGE,
    PipelineState,
    RecipeImportPipeline,
    extract_recipe,
    get_default_pipeline,
    validate_url,
)
from .fetcher import FetchError, FetchedPage, PageFetcher
from .import_log import ImportLogger, ImportLogRecord
from .ingredient_parser import parse_ingredient, parse_ingredients_batch
from .models import (
    ExtractionMethod,
    ExtractionResult,
    Ingredient,
    NutritionInfo,
    ParsedRecipe,
    RecipeCategory,
    RecipeComponent,
    SourceDetectionResult,
    Step,
    UrlSource,
)
from .source_detector import detect_source, get_known_recipe_sites

__all__ = [
    "AIExtractionError",
    "AIRecipeOutput",
    "DEFAULT_FALLBACK_MESSAGE",
    "ExtractionMethod",
    "ExtractionResult",
    "FetchError",
    "FetchedPage",
    "ImportLogRecord",
    "ImportLogger",
    "Ingredient",
    "NutritionInfo",
    "OpenAIRecipeAI",
    "PageFetcher",
    "ParsedRecipe",
    "PipelineState",
    "RecipeAI",
    "RecipeCategory",
    "RecipeComponent",
    "RecipeImportPipeline",
    "SourceDetectionResult",
    "Step",
    "UrlSource",
    "detect_source",
    "extract_recipe",
    "get_default_pipeline",
    "get_known_recipe_sites",
    "parse_ingredient",
    "parse_ingredients_batch",
    "validate_url",
]
