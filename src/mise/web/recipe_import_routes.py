"""API endpoints for recipe import from external URLs and pasted text."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mise.config import settings
from mise.recipe_import import (
    ExtractionMethod,
    RecipeImportPipeline,
    UrlSource,
    get_default_pipeline,
    validate_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/url-import", tags=["recipe-import"])


# =============================================================================
# Request Models
# =============================================================================


class _RequestModel(BaseModel):
    # Accept both snake_case and camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractRequest(_RequestModel):
    """Request to import a recipe from a URL."""

    url: str
    fallback_content: str | None = None  # Parsed by the AI if URL extraction fails


class ParseContentRequest(_RequestModel):
    """Request to parse pasted recipe text."""

    content: str
    source_url: str | None = None
    source_author: str | None = None
    image_url: str | None = None


# =============================================================================
# Response Models
# =============================================================================


class _ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class IngredientResponse(_ResponseModel):
    name: str
    quantity: float | None = None
    unit: str | None = None
    notes: str | None = None
    optional: bool = False


class StepResponse(_ResponseModel):
    order: int
    instruction: str
    duration: int | None = None
    tips: str | None = None


class ComponentResponse(_ResponseModel):
    name: str
    ingredients: list[IngredientResponse] = []
    steps: list[StepResponse] = []


class NutritionResponse(_ResponseModel):
    calories_per_serving: float | None = None
    protein_grams: float | None = None
    carbs_grams: float | None = None
    fat_grams: float | None = None
    fiber_grams: float | None = None
    sugar_grams: float | None = None
    sodium_mg: float | None = None


class RecipeResponse(_ResponseModel):
    """Structured recipe for user review before saving."""

    title: str
    description: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    prep_time_minutes: int | None = None
    cook_time_minutes: int | None = None
    servings: int | None = None
    category: str | None = None
    cuisine: str | None = None
    tags: list[str] = []
    components: list[ComponentResponse] = []
    confidence: float = 0.0
    source_url: str | None = None
    source_author: str | None = None
    nutrition: NutritionResponse | None = None


class ExtractionResponse(_ResponseModel):
    """Outcome of an import. Failed extractions are still HTTP 200."""

    success: bool
    method: ExtractionMethod
    confidence: float = 0.0
    recipe: RecipeResponse | None = None
    error: str | None = None
    partial_data: RecipeResponse | None = None
    requires_manual_input: bool = False
    ai_tokens_used: int | None = None
    processing_time_ms: int | None = None
    fallback_message: str | None = None


class SourceDetectionResponse(_ResponseModel):
    source: UrlSource
    is_known_recipe_site: bool = False
    site_name: str | None = None


class KnownSiteResponse(BaseModel):
    domain: str
    name: str


# =============================================================================
# Dependencies
# =============================================================================


def get_pipeline() -> RecipeImportPipeline:
    """Shared pipeline. Overridden in tests."""
    return get_default_pipeline()


def _require_valid_url(url: str) -> str:
    error = validate_url(url)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return url.strip()


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/extract", response_model=ExtractionResponse)
async def extract_from_url(
    request: ExtractRequest,
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
    x_user_id: str | None = Header(None),
) -> ExtractionResponse:
    """
    Extract a recipe from a URL.

    Tries the free tiers first, then the AI. When everything fails and
    `fallback_content` was supplied, that text is parsed instead.
    """
    url = _require_valid_url(request.url)
    logger.info(f"Import request for {url} (user: {x_user_id or 'anonymous'})")

    result = await pipeline.extract_from_url(
        url,
        user_id=x_user_id,
        fallback_content=request.fallback_content,
    )
    return ExtractionResponse.model_validate(result)


@router.post("/parse-content", response_model=ExtractionResponse)
async def parse_content(
    request: ParseContentRequest,
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
) -> ExtractionResponse:
    """Parse pasted recipe text with the AI. No free tiers apply to plain text."""
    length = len(request.content.strip())
    if length < settings.content_min_chars:
        raise HTTPException(
            status_code=400,
            detail=f"Content must be at least {settings.content_min_chars} characters",
        )
    if length > settings.content_max_chars:
        raise HTTPException(
            status_code=400,
            detail=f"Content must be at most {settings.content_max_chars} characters",
        )

    logger.info(f"Parse-content request ({length} chars)")
    result = await pipeline.parse_content(
        request.content,
        source_url=request.source_url,
        source_author=request.source_author,
        image_url=request.image_url,
    )
    return ExtractionResponse.model_validate(result)


@router.get("/detect-source", response_model=SourceDetectionResponse)
async def detect_source(
    url: str = Query(...),
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
) -> SourceDetectionResponse:
    """Classify a URL without fetching it."""
    url = _require_valid_url(url)
    return SourceDetectionResponse.model_validate(pipeline.detect_source(url))


@router.get("/known-sites", response_model=list[KnownSiteResponse])
async def known_sites(
    pipeline: RecipeImportPipeline = Depends(get_pipeline),
) -> list[KnownSiteResponse]:
    """Recipe sites with reliable structured data."""
    return [KnownSiteResponse(**site) for site in pipeline.known_sites()]
