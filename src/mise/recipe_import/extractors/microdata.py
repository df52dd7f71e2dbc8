"""Microdata/RDFa extraction (Tier 2).

Fallback for pages that mark recipe fields inline instead of publishing
JSON-LD:
- itemscope itemtype="http://schema.org/Recipe" (read with extruct)
- typeof="schema:Recipe" with property="schema:recipeIngredient" (RDFa)
- bare itemprop="recipeIngredient" attributes with no Recipe scope at all

RDFa and the scope-less case are read in document order from the parsed
page. Properties that belong to a nested item (an author's name, a
review's rating) never leak into the recipe.
"""

import logging

import extruct
from bs4 import BeautifulSoup, Tag

from ..ingredient_parser import parse_ingredients_batch
from ..models import ExtractionMethod, ParsedRecipe, RecipeComponent, Step
from ..normalizer import (
    element_text,
    extract_cuisine,
    make_soup,
    map_category,
    normalize_text,
    parse_duration,
    parse_servings,
)
from .base import BaseExtractor
from .json_ld import convert_recipe_node, find_recipe_node

logger = logging.getLogger(__name__)

_SCOPE_ATTRS = ("itemscope", "typeof")
_PROP_ATTRS = ("itemprop", "property")
_SCHEMA_PREFIXES = ("schema:", "http://schema.org/", "https://schema.org/")

# Attributes that carry the value instead of the element text, in preference order
_VALUE_ATTRS = ("content", "datetime")
_URL_ATTRS = ("src", "href")
_URL_PROPS = frozenset({"image", "video", "url"})

_LIST_TAGS = ("ol", "ul", "div", "section")


# =============================================================================
# Microdata items
# =============================================================================


def _dedupe(values: list) -> list:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def find_recipe_item(html: str, url: str | None = None) -> dict | None:
    """
    First schema.org Recipe microdata item, in JSON-LD shape.

    Nested items are kept as nested dicts, so an author's name stays on the
    author. Repeated values are deduplicated.
    """
    data = extruct.extract(html, base_url=url, syntaxes=["microdata"], uniform=True, errors="log")
    item = find_recipe_node(data.get("microdata", []))
    if item is None:
        return None
    return {key: _dedupe(value) if isinstance(value, list) else value for key, value in item.items()}


# =============================================================================
# Attribute scan (RDFa and scope-less pages)
# =============================================================================


def _local_name(value: str) -> str | None:
    """schema.org property name, or None for other vocabularies (og:, fb:)."""
    lower = value.lower()
    for prefix in _SCHEMA_PREFIXES:
        if lower.startswith(prefix):
            return lower[len(prefix) :]
    return None if ":" in lower else lower


def _prop_names(element: Tag) -> list[str]:
    names = []
    for attr in _PROP_ATTRS:
        for value in (element.get(attr) or "").split():
            name = _local_name(value)
            if name:
                names.append(name)
    return names


def _scope_of(element: Tag) -> Tag | None:
    """Nearest ancestor that opens an item scope."""
    for parent in element.parents:
        if isinstance(parent, Tag) and any(parent.has_attr(attr) for attr in _SCOPE_ATTRS):
            return parent
    return None


def find_prop_elements(root: Tag, prop: str, scope: Tag | None = None) -> list[Tag]:
    """Elements carrying `prop` whose nearest scope is `scope` (None: outside any scope)."""
    prop = prop.lower()
    return [
        element
        for element in root.find_all(lambda tag: any(tag.has_attr(attr) for attr in _PROP_ATTRS))
        if prop in _prop_names(element) and _scope_of(element) is scope
    ]


def prop_value(element: Tag, prop: str) -> str:
    """A content-like attribute when present, else the element's text."""
    attrs = _VALUE_ATTRS + (_URL_ATTRS if prop in _URL_PROPS else ())
    for attr in attrs:
        value = normalize_text(element.get(attr))
        if value:
            return value
    return element_text(element)


def prop_values(root: Tag, prop: str, scope: Tag | None = None) -> list[str]:
    """All values for one property, in document order, deduplicated."""
    values = [prop_value(element, prop) for element in find_prop_elements(root, prop, scope)]
    return _dedupe([value for value in values if value])


def first_prop(root: Tag, prop: str, scope: Tag | None = None) -> str | None:
    values = prop_values(root, prop, scope)
    return values[0] if values else None


def instruction_values(root: Tag, scope: Tag | None = None) -> list[str]:
    """Instruction texts. A single property wrapping a list yields one step per item."""
    steps: list[str] = []
    for element in find_prop_elements(root, "recipeInstructions", scope):
        items = [element_text(li) for li in element.find_all("li")] if element.name in _LIST_TAGS else []
        for text in [item for item in items if item] or [prop_value(element, "recipeInstructions")]:
            if text and text not in steps:
                steps.append(text)
    return steps


def find_rdfa_container(soup: BeautifulSoup) -> Tag | None:
    """First element whose typeof names a schema.org Recipe."""

    def is_recipe_scope(tag: Tag) -> bool:
        return any(_local_name(value) == "recipe" for value in (tag.get("typeof") or "").split())

    return soup.find(is_recipe_scope)


# =============================================================================
# Extractor
# =============================================================================


class MicrodataExtractor(BaseExtractor):
    """Tier 2: per-field microdata or RDFa attributes."""

    name = "Microdata/RDFa"
    method = ExtractionMethod.MICRODATA
    priority = 20
    success_threshold = 0.6

    base_confidence = 0.4
    max_confidence = 0.95
    step_bonuses = ((3, 0.15), (1, 0.10))

    not_found_message = "No Microdata recipe markup found"

    def can_handle(self, html: str) -> bool:
        lower = html.lower()
        return (
            ("itemtype=" in lower and "schema.org/recipe" in lower)
            or ("typeof=" in lower and "recipe" in lower)
            or "recipeingredient" in lower
            or "recipeinstructions" in lower
        )

    def build_recipe(self, html: str, url: str) -> ParsedRecipe | None:
        item = find_recipe_item(html, url)
        if item is not None:
            return convert_recipe_node(item, url)

        soup = make_soup(html)
        container = find_rdfa_container(soup)
        if container is None:
            # Loose mode: properties scattered over the page without a container
            if not prop_values(soup, "recipeIngredient"):
                return None
            logger.debug("No Recipe scope found, scanning page-wide properties")

        return self._parse_scope(soup if container is None else container, container, url)

    def _parse_scope(self, root: Tag, scope: Tag | None, url: str) -> ParsedRecipe:
        def prop(name: str) -> str | None:
            return first_prop(root, name, scope)

        ingredients = prop_values(root, "recipeIngredient", scope) or prop_values(root, "ingredients", scope)
        steps = [
            Step(order=i, instruction=text)
            for i, text in enumerate(instruction_values(root, scope), start=1)
        ]
        image = prop("image")

        return ParsedRecipe(
            title=prop("name") or "",
            description=prop("description"),
            image_url=image if image and image.startswith("http") else None,
            prep_time_minutes=parse_duration(prop("prepTime")),
            cook_time_minutes=parse_duration(prop("cookTime")),
            servings=parse_servings(prop("recipeYield")),
            category=map_category(prop("recipeCategory")).value,
            cuisine=extract_cuisine(prop("recipeCuisine")),
            components=[
                RecipeComponent(
                    name="Main",
                    ingredients=parse_ingredients_batch(ingredients),
                    steps=steps,
                )
            ],
            source_url=url,
            source_author=prop("author"),
        )
