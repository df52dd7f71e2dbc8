"""HTML heuristics extraction (Tier 3).

Reads recipe cards rendered by common WordPress recipe plugins and
generic class conventions when a page carries no structured data:
- WP Recipe Maker (wprm-*)
- Tasty Recipes (tasty-recipes-*)
- Recipe card blocks and plain .ingredients/.instructions lists

Ingredients and instructions are resolved independently, each through three
strategies tried in order: container-by-class, item-by-class, and a list
anchored under a heading.
"""

import logging
import re
from collections.abc import Callable

from bs4 import BeautifulSoup, Tag

from ..ingredient_parser import parse_ingredients_batch
from ..models import ExtractionMethod, ParsedRecipe, RecipeComponent, Step
from ..normalizer import element_text, find_meta_content, make_soup, parse_duration, parse_servings
from .base import BaseExtractor

logger = logging.getLogger(__name__)

# Plugin signatures checked by can_handle
RECIPE_SIGNATURES = (
    "wprm-recipe",
    "tasty-recipes",
    "recipe-card",
    "recipe-ingredients",
    "recipe-instructions",
    'class="ingredients"',
    'class="instructions"',
    'class="recipe"',
)

# (tag or None, class token) for the card that wraps the whole recipe
RECIPE_CONTAINERS = (
    ("div", "wprm-recipe-container"),
    ("div", "wprm-recipe"),
    ("div", "tasty-recipes"),
    ("div", "recipe-card"),
    ("article", "recipe"),
)

# (tag or None, class substring)
TITLE_SELECTORS = (
    (None, "wprm-recipe-name"),
    (None, "tasty-recipes-title"),
    (None, "recipe-title"),
    (None, "recipe-name"),
    (None, "recipe-card-title"),
    ("h1", "entry-title"),
)

DESCRIPTION_SELECTORS = (
    (None, "wprm-recipe-summary"),
    (None, "tasty-recipes-description"),
    (None, "recipe-description"),
    (None, "recipe-summary"),
)

PREP_TIME_SELECTORS = ((None, "wprm-recipe-prep_time"), (None, "tasty-recipes-prep-time"), (None, "prep-time"))
COOK_TIME_SELECTORS = ((None, "wprm-recipe-cook_time"), (None, "tasty-recipes-cook-time"), (None, "cook-time"))
SERVINGS_SELECTORS = (
    (None, "wprm-recipe-servings"),
    (None, "tasty-recipes-yield"),
    (None, "recipe-yield"),
    (None, "servings"),
    (None, "yield"),
)

INGREDIENT_CONTAINER_CLASSES = (
    "wprm-recipe-ingredients",
    "tasty-recipes-ingredients",
    "recipe-ingredients",
    "ingredients-section",
    "ingredient-list",
    "ingredients",
)
INGREDIENT_ITEM_CLASSES = (
    "wprm-recipe-ingredient",
    "tasty-recipes-ingredient",
    "recipe-ingredient",
    "ingredient",
)

INSTRUCTION_CONTAINER_CLASSES = (
    "wprm-recipe-instructions",
    "tasty-recipes-instructions",
    "recipe-instructions",
    "instructions-section",
    "instruction-list",
    "recipe-steps",
    "directions",
    "instructions",
    "steps",
    "method",
)
INSTRUCTION_ITEM_CLASSES = (
    "wprm-recipe-instruction",
    "tasty-recipes-instruction",
    "recipe-step",
    "instruction",
    "step",
)

IMAGE_CLASSES = ("wprm-recipe-image", "tasty-recipes-image", "recipe-image")

# Whole label text, so "Ingredients for the sauce" paragraphs don't anchor a list
INGREDIENT_HEADING_RE = re.compile(r"(?:ingredients?|what you(?:'|’)?ll need|what you need)\s*:?", re.IGNORECASE)
INSTRUCTION_HEADING_RE = re.compile(r"(?:instructions?|directions?|steps?|method|preparation)\s*:?", re.IGNORECASE)
LABEL_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "strong", "b", "p", "span"]

_TITLE_SEPARATOR_RE = re.compile(r"\s+[-–—|]\s+|\s*\|\s*")


def class_contains(fragment: str) -> Callable[[str | None], bool]:
    """class_ filter: some class value contains `fragment` (case-insensitive)."""
    fragment = fragment.lower()
    return lambda value: bool(value) and fragment in value.lower()


def list_items(element: Tag) -> list[str]:
    """Text of every <li> under an element, empty items dropped."""
    return [text for text in (element_text(li) for li in element.find_all("li")) if text]


# =============================================================================
# Strategies
# =============================================================================


def find_recipe_container(soup: BeautifulSoup) -> Tag | None:
    """Best-guess recipe card, tried in plugin order."""
    for tag, token in RECIPE_CONTAINERS:
        container = soup.find(tag, class_=token)
        if container is not None:
            return container
    return None


def items_from_container(root: Tag, container_classes: tuple[str, ...]) -> list[str]:
    """Strategy 1: list items inside the first container whose class contains a known name."""
    for fragment in container_classes:
        for container in root.find_all(class_=class_contains(fragment)):
            items = list_items(container)
            if items:
                return items
    return []


def items_by_class(root: Tag, item_classes: tuple[str, ...], li_fragment: str) -> list[str]:
    """Strategy 2: elements individually tagged with an item class."""
    for token in item_classes:
        items = [element_text(element) for element in root.find_all(class_=token)]
        items = [item for item in items if item]
        if items:
            return items

    items = [element_text(li) for li in root.find_all("li", class_=class_contains(li_fragment))]
    return [item for item in items if item]


def items_under_heading(root: Tag, heading_re: re.Pattern) -> list[str]:
    """Strategy 3: the first list after a label whose whole text matches."""
    for label in root.find_all(LABEL_TAGS):
        if not heading_re.fullmatch(element_text(label)):
            continue
        # <p><strong>Ingredients</strong></p>: look past the wrapper
        search_from = label.parent if label.parent is not None and label.parent.name == "p" else label
        found = search_from.find_next(["ul", "ol"])
        if found is not None:
            items = list_items(found)
            if items:
                return items
    return []


def extract_ingredient_lines(root: Tag) -> list[str]:
    return (
        items_from_container(root, INGREDIENT_CONTAINER_CLASSES)
        or items_by_class(root, INGREDIENT_ITEM_CLASSES, "ingredient")
        or items_under_heading(root, INGREDIENT_HEADING_RE)
    )


def extract_instruction_lines(root: Tag) -> list[str]:
    return (
        items_from_container(root, INSTRUCTION_CONTAINER_CLASSES)
        or items_by_class(root, INSTRUCTION_ITEM_CLASSES, "step")
        or items_under_heading(root, INSTRUCTION_HEADING_RE)
    )


# =============================================================================
# Metadata
# =============================================================================


def first_text(root: Tag, selectors: tuple[tuple[str | None, str], ...], parse=None):
    """
    First non-empty text among elements matching the selectors.

    With `parse`, elements whose text does not parse (labels, icons) are skipped.
    """
    for tag, fragment in selectors:
        for element in root.find_all(tag, class_=class_contains(fragment)):
            text = element_text(element)
            if not text:
                continue
            if parse is None:
                return text
            value = parse(text)
            if value is not None:
                return value
    return None


def extract_title_from_page(soup: BeautifulSoup) -> str | None:
    """Title fallback: <h1>, then og:title, then <title> cut at the first separator."""
    heading = element_text(soup.find("h1"))
    if heading:
        return heading

    og_title = find_meta_content(soup, "og:title")
    if og_title:
        return og_title

    page_title = element_text(soup.find("title"))
    if page_title:
        title = _TITLE_SEPARATOR_RE.split(page_title)[0].strip()
        if title:
            return title

    return None


def extract_recipe_image(root: Tag, soup: BeautifulSoup) -> str | None:
    for fragment in IMAGE_CLASSES:
        for element in root.find_all(class_=class_contains(fragment)):
            image = element if element.name == "img" else element.find("img")
            if image is None:
                continue
            src = image.get("data-src") or image.get("src")
            if src and src.startswith("http"):
                return src

    return find_meta_content(soup, "og:image")


# =============================================================================
# Extractor
# =============================================================================


class HeuristicsExtractor(BaseExtractor):
    """Tier 3: class-name and layout conventions."""

    name = "HTML Heuristics"
    method = ExtractionMethod.HEURISTICS
    priority = 30
    success_threshold = 0.5

    base_confidence = 0.3
    max_confidence = 0.90
    ingredient_bonuses = ((5, 0.20), (3, 0.15), (1, 0.10))
    step_bonuses = ((4, 0.20), (2, 0.15), (1, 0.10))

    not_found_message = "No recipe patterns found"

    def can_handle(self, html: str) -> bool:
        lower = html.lower()
        return any(signature in lower for signature in RECIPE_SIGNATURES)

    def build_recipe(self, html: str, url: str) -> ParsedRecipe | None:
        soup = make_soup(html)
        container = find_recipe_container(soup)
        root = soup if container is None else container

        ingredient_lines = extract_ingredient_lines(root)
        if not ingredient_lines:
            # An instructions-only page is not worth returning
            return None

        instruction_lines = extract_instruction_lines(root)
        logger.debug(
            f"Heuristics found {len(ingredient_lines)} ingredients, {len(instruction_lines)} steps"
        )

        return ParsedRecipe(
            title=first_text(root, TITLE_SELECTORS) or extract_title_from_page(soup) or "",
            description=first_text(root, DESCRIPTION_SELECTORS),
            image_url=extract_recipe_image(root, soup),
            prep_time_minutes=first_text(root, PREP_TIME_SELECTORS, parse_duration),
            cook_time_minutes=first_text(root, COOK_TIME_SELECTORS, parse_duration),
            servings=first_text(root, SERVINGS_SELECTORS, parse_servings),
            components=[
                RecipeComponent(
                    name="Main",
                    ingredients=parse_ingredients_batch(ingredient_lines),
                    steps=[
                        Step(order=i, instruction=text)
                        for i, text in enumerate(instruction_lines, start=1)
                    ],
                )
            ],
            source_url=url,
        )
