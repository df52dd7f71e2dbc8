"""JSON-LD/Schema.org extraction (Tier 1).

The most reliable tier: sites publish this data for search engines.

Supports:
- Standard JSON-LD with @type "Recipe" (or a type list containing it)
- @graph wrappers and top-level arrays
- HowToSection groups in instructions (flattened, section name kept as a tip)
- NutritionInformation
"""

import logging
import re
from typing import Any

import extruct

from ..ingredient_parser import parse_ingredients_batch
from ..models import ExtractionMethod, ParsedRecipe, RecipeComponent, Step
from ..normalizer import (
    decode_html_entities,
    extract_author,
    extract_cuisine,
    extract_image_url,
    map_category,
    normalize_text,
    parse_duration,
    parse_nutrition,
    parse_servings,
    parse_tags,
    strip_tags,
)
from .base import BaseExtractor

logger = logging.getLogger(__name__)

# Cyclic or absurdly nested documents stop here
MAX_SEARCH_DEPTH = 10

_RECIPE_TYPE_RE = re.compile(r"[\"']@type[\"']\s*:\s*(?:\[[^\]]*?)?[\"'](?:[^\"']*[/:])?Recipe[\"']")
_NUMBERED_STEP_RE = re.compile(r"(?:^|\n)\s*(?:step\s*)?\d+\s*[.):]\s*", re.IGNORECASE)
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")
_LINE_BREAK_TAG_RE = re.compile(r"<\s*(?:br\s*/?|/p|/li|/div)\s*>", re.IGNORECASE)


# =============================================================================
# Block discovery
# =============================================================================


def find_json_ld_blocks(html: str, url: str | None = None) -> list[Any]:
    """
    Every JSON-LD item on the page, with top-level arrays flattened.

    extruct logs and drops the syntax when a block cannot be decoded, so a
    broken page yields nothing here and the later tiers still get their turn.
    """
    data = extruct.extract(html, base_url=url, syntaxes=["json-ld"], errors="log")
    return data.get("json-ld", [])


def is_recipe_type(value: Any) -> bool:
    if isinstance(value, list):
        return any(is_recipe_type(v) for v in value)
    if not isinstance(value, str):
        return False
    return value == "Recipe" or value.endswith("/Recipe") or value.endswith(":Recipe")


def find_recipe_node(data: Any, depth: int = 0) -> dict | None:
    """
    Depth-first search for the first Recipe-typed object.

    Looks at the object itself, then @graph, mainEntity, and array items.
    """
    if depth > MAX_SEARCH_DEPTH or not data:
        return None

    if isinstance(data, list):
        for item in data:
            recipe = find_recipe_node(item, depth + 1)
            if recipe is not None:
                return recipe
        return None

    if not isinstance(data, dict):
        return None

    if is_recipe_type(data.get("@type")):
        return data

    for key in ("@graph", "mainEntity"):
        nested = data.get(key)
        if nested:
            recipe = find_recipe_node(nested, depth + 1)
            if recipe is not None:
                return recipe

    return None


# =============================================================================
# Instructions
# =============================================================================


def _markup_to_lines(text: str) -> str:
    text = _LINE_BREAK_TAG_RE.sub("\n", decode_html_entities(text))
    return re.sub(r"<[^>]+>", " ", text)


def split_instruction_string(text: str) -> list[Step]:
    """
    Split a single instruction string into steps.

    Tries numbered markers ("1." / "Step 2:"), then line breaks, then
    sentences. Falls back to one step.
    """
    text = _markup_to_lines(text)

    numbered = [normalize_text(part) for part in _NUMBERED_STEP_RE.split(text)]
    numbered = [part for part in numbered if part]
    if len(_NUMBERED_STEP_RE.findall(text)) > 1 and numbered:
        pieces = numbered
    else:
        lines = [normalize_text(line) for line in text.splitlines()]
        lines = [line for line in lines if line]
        if len(lines) > 1:
            pieces = lines
        else:
            flat = normalize_text(text)
            pieces = [s for s in _SENTENCE_BREAK_RE.split(flat) if s.strip()] if flat else []

    return [Step(order=i, instruction=piece) for i, piece in enumerate(pieces, start=1)]


def _step_text(item: dict) -> str:
    text = item.get("text") or item.get("name") or item.get("description") or ""
    return strip_tags(text) if isinstance(text, str) else ""


def _collect_steps(instructions: Any, depth: int) -> list[tuple[str, str | None]]:
    """Flatten instructions to (text, section_name) pairs in document order."""
    if depth > MAX_SEARCH_DEPTH or not instructions:
        return []

    if isinstance(instructions, str):
        return [(step.instruction, None) for step in split_instruction_string(instructions)]

    if isinstance(instructions, dict):
        if _is_section(instructions):
            section_name = normalize_text(instructions.get("name")) or None
            return [
                (text, section_name or section)
                for text, section in _collect_steps(instructions.get("itemListElement"), depth + 1)
            ]
        if "itemListElement" in instructions and not instructions.get("text"):
            return _collect_steps(instructions["itemListElement"], depth + 1)
        text = _step_text(instructions)
        return [(text, None)] if text else []

    if isinstance(instructions, list):
        steps: list[tuple[str, str | None]] = []
        for item in instructions:
            if isinstance(item, str):
                text = strip_tags(item)
                if text:
                    steps.append((text, None))
            else:
                steps.extend(_collect_steps(item, depth + 1))
        return steps

    return []


def _is_section(item: dict) -> bool:
    item_type = item.get("@type")
    types = item_type if isinstance(item_type, list) else [item_type]
    return "HowToSection" in types


def parse_instructions(instructions: Any) -> list[Step]:
    """
    Parse recipeInstructions in any of its published shapes.

    Handles:
        - A single descriptive string (split into steps)
        - A flat array of strings
        - An array of HowToStep objects
        - HowToSection objects, flattened with continuous numbering and the
          section name kept as the step's tip
    """
    return [
        Step(order=i, instruction=text, tips=section)
        for i, (text, section) in enumerate(_collect_steps(instructions, 0), start=1)
    ]


# =============================================================================
# Extractor
# =============================================================================


def _video_url(video: Any) -> str | None:
    if isinstance(video, list):
        video = video[0] if video else None
    if isinstance(video, dict):
        for key in ("contentUrl", "embedUrl", "url"):
            url = video.get(key)
            if isinstance(url, str) and url.startswith("http"):
                return url
    if isinstance(video, str) and video.startswith("http"):
        return video
    return None


def convert_recipe_node(node: dict, url: str) -> ParsedRecipe:
    """Convert a schema.org Recipe object to a ParsedRecipe."""
    name = node.get("name")
    description = node.get("description")
    return ParsedRecipe(
        title=normalize_text(decode_html_entities(name)) if isinstance(name, str) else "",
        description=strip_tags(description) or None if isinstance(description, str) else None,
        image_url=extract_image_url(node.get("image")),
        video_url=_video_url(node.get("video")),
        prep_time_minutes=parse_duration(node.get("prepTime")),
        cook_time_minutes=parse_duration(node.get("cookTime")),
        servings=parse_servings(node.get("recipeYield")),
        category=map_category(node.get("recipeCategory")).value,
        cuisine=extract_cuisine(node.get("recipeCuisine")),
        tags=parse_tags(node.get("keywords")),
        components=[
            RecipeComponent(
                name="Main",
                ingredients=parse_ingredients_batch(node.get("recipeIngredient") or node.get("ingredients")),
                steps=parse_instructions(node.get("recipeInstructions")),
            )
        ],
        source_url=url,
        source_author=extract_author(node.get("author")),
        nutrition=parse_nutrition(node.get("nutrition")),
    )


class JsonLdExtractor(BaseExtractor):
    """Tier 1: embedded JSON-LD Recipe data."""

    name = "Schema.org/JSON-LD"
    method = ExtractionMethod.JSON_LD
    priority = 10
    success_threshold = 0.6

    base_confidence = 0.5
    max_confidence = 0.99

    not_found_message = "No Schema.org Recipe data found"

    def can_handle(self, html: str) -> bool:
        return "application/ld+json" in html and bool(_RECIPE_TYPE_RE.search(html))

    def build_recipe(self, html: str, url: str) -> ParsedRecipe | None:
        # First match wins; multiple recipes are never merged
        node = find_recipe_node(find_json_ld_blocks(html, url))
        return convert_recipe_node(node, url) if node is not None else None
