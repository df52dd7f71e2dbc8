"""Normalization utilities for recipe data.

Pure functions shared by every extractor. None of them raise on bad
input: unparseable values come back as None (or an empty list).
"""

import html
import math
import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from .models import NutritionInfo, RecipeCategory

UNICODE_FRACTIONS = {
    "¼": 0.25,
    "½": 0.5,
    "¾": 0.75,
    "⅓": 1 / 3,
    "⅔": 2 / 3,
    "⅛": 0.125,
    "⅜": 0.375,
    "⅝": 0.625,
    "⅞": 0.875,
}

# Substring match, first hit wins
CATEGORY_KEYWORDS: tuple[tuple[str, RecipeCategory], ...] = (
    ("breakfast", RecipeCategory.BREAKFAST),
    ("brunch", RecipeCategory.BRUNCH),
    ("lunch", RecipeCategory.LUNCH),
    ("dinner", RecipeCategory.DINNER),
    ("main course", RecipeCategory.MAIN_COURSE),
    ("main dish", RecipeCategory.MAIN_COURSE),
    ("entree", RecipeCategory.MAIN_COURSE),
    ("appetizer", RecipeCategory.APPETIZER),
    ("starter", RecipeCategory.APPETIZER),
    ("snack", RecipeCategory.SNACK),
    ("dessert", RecipeCategory.DESSERT),
    ("beverage", RecipeCategory.BEVERAGE),
    ("drink", RecipeCategory.BEVERAGE),
    ("soup", RecipeCategory.SOUP),
    ("salad", RecipeCategory.SALAD),
    ("side dish", RecipeCategory.SIDE_DISH),
    ("side", RecipeCategory.SIDE_DISH),
    ("sauce", RecipeCategory.SAUCE),
    ("bread", RecipeCategory.BREAD),
    ("baking", RecipeCategory.BAKING),
)

_ISO_DURATION_RE = re.compile(
    r"^P(?:(\d+(?:\.\d+)?)D)?"
    r"(?:T(?:(\d+(?:\.\d+)?)H)?(?:(\d+(?:\.\d+)?)M)?(?:(\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)
_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)(?![a-z])", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*(?:minutes?|mins?|m)(?![a-z])", re.IGNORECASE)
_ASCII_FRACTION_RE = re.compile(r"^(?:(\d+)\s+)?(\d+)\s*/\s*(\d+)$")
_DECIMAL_RE = re.compile(r"^(\d+(?:\.\d+)?)(?:\s*(?:-|–|to)\s*\d+(?:\.\d+)?)?$")
_TAG_RE = re.compile(r"<[^>]+>")


# =============================================================================
# Text
# =============================================================================


def normalize_text(text: Any) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    if text is None:
        return ""
    return " ".join(str(text).split())


def decode_html_entities(text: str) -> str:
    """Decode named, decimal and hex character references."""
    return html.unescape(text) if text else ""


def strip_tags(markup: str | None) -> str:
    """Drop markup, decode entities and normalize whitespace."""
    if not markup:
        return ""
    return normalize_text(decode_html_entities(_TAG_RE.sub(" ", markup)))


def make_soup(markup: str | None) -> BeautifulSoup:
    """Parse a page. lxml closes implicit <li>/<p> the way browsers do."""
    return BeautifulSoup(markup or "", "lxml")


def element_text(element: Tag | None) -> str:
    """Text of an element with nested tags flattened to single spaces."""
    if element is None:
        return ""
    return normalize_text(element.get_text(" ", strip=True))


def find_meta_content(markup: str | BeautifulSoup, prop: str) -> str | None:
    """
    Read a <meta> tag's content by property or name.

    Examples:
        <meta property="og:title" content="Pasta">  -> "Pasta"
        <meta content="Pasta" name="og:title">      -> "Pasta"
    """
    soup = markup if isinstance(markup, BeautifulSoup) else make_soup(markup)
    for attr in ("property", "name"):
        for meta in soup.find_all("meta", attrs={attr: prop}):
            content = normalize_text(meta.get("content"))
            if content:
                return content
    return None


# =============================================================================
# Numbers
# =============================================================================


def parse_duration(duration: Any) -> int | None:
    """
    Parse a duration to whole minutes.

    Examples:
        PT30M -> 30
        PT1H30M -> 90
        P0DT2H -> 120
        "45" -> 45
        "1 hour 15 mins" -> 75
        "" / "soon" -> None
    """
    if duration is None or isinstance(duration, bool):
        return None

    if isinstance(duration, int):
        return duration if duration >= 0 else None

    if isinstance(duration, float):
        return round(duration) if math.isfinite(duration) and duration >= 0 else None

    if not isinstance(duration, str):
        return None

    text = duration.strip()
    if not text:
        return None

    # ISO 8601 duration
    match = _ISO_DURATION_RE.match(text)
    if match and any(match.groups()):
        days, hours, minutes, seconds = (float(g) if g else 0.0 for g in match.groups())
        return round(days * 1440 + hours * 60 + minutes + seconds / 60)

    # Bare number, assumed minutes
    if text.isdigit():
        return int(text)

    # Free text ("1 hr 20 min")
    hours_match = _HOURS_RE.search(text)
    minutes_match = _MINUTES_RE.search(text)
    total = 0.0
    if hours_match:
        total += float(hours_match.group(1)) * 60
    if minutes_match:
        total += int(minutes_match.group(1))

    return round(total) if total > 0 else None


def parse_quantity(quantity: Any) -> float | None:
    """
    Parse an ingredient quantity, including fractions.

    Examples:
        "2" -> 2.0
        "1.5" -> 1.5
        "1 1/2" -> 1.5
        "1/2" -> 0.5
        "¾" -> 0.75
        "1½" -> 1.5
        "2-3" -> 2.0 (lower bound of a range)
        "garbage" -> None
    """
    if quantity is None or isinstance(quantity, bool):
        return None

    if isinstance(quantity, (int, float)):
        value = float(quantity)
        return value if math.isfinite(value) and value >= 0 else None

    text = str(quantity).strip().replace("⁄", "/")
    if not text:
        return None

    # Unicode vulgar fractions, optionally after a whole number
    for glyph, value in UNICODE_FRACTIONS.items():
        if glyph in text:
            whole_part = text.replace(glyph, "", 1).strip()
            if not whole_part:
                return value
            if whole_part.isdigit():
                return int(whole_part) + value
            return None

    # ASCII fractions ("1/2", "1 1/2")
    match = _ASCII_FRACTION_RE.match(text)
    if match:
        whole, numerator, denominator = match.groups()
        if int(denominator) == 0:
            return None
        return (int(whole) if whole else 0) + int(numerator) / int(denominator)

    match = _DECIMAL_RE.match(text)
    if match:
        return float(match.group(1))

    return None


def parse_servings(yield_value: Any) -> int | None:
    """
    Parse recipe yield/servings to integer.

    Examples:
        "4 servings" -> 4
        "Serves 6" -> 6
        ["8", "8 slices"] -> 8
        "Makes 12 cookies" -> 12
    """
    if yield_value is None or isinstance(yield_value, bool):
        return None

    if isinstance(yield_value, int):
        return yield_value if yield_value >= 0 else None

    if isinstance(yield_value, float):
        return int(yield_value) if math.isfinite(yield_value) and yield_value >= 0 else None

    if isinstance(yield_value, list):
        for item in yield_value:
            servings = parse_servings(item)
            if servings is not None:
                return servings
        return None

    match = re.search(r"(\d+)", str(yield_value))
    return int(match.group(1)) if match else None


def _first_number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"(\d+(?:\.\d+)?)", value)
        return float(match.group(1)) if match else None
    return None


def parse_nutrition(nutrition: Any) -> NutritionInfo | None:
    """Parse a schema.org NutritionInformation object."""
    if not isinstance(nutrition, dict):
        return None

    info = NutritionInfo(
        calories_per_serving=_first_number(nutrition.get("calories")),
        protein_grams=_first_number(nutrition.get("proteinContent")),
        carbs_grams=_first_number(nutrition.get("carbohydrateContent")),
        fat_grams=_first_number(nutrition.get("fatContent")),
        fiber_grams=_first_number(nutrition.get("fiberContent")),
        sugar_grams=_first_number(nutrition.get("sugarContent")),
        sodium_mg=_first_number(nutrition.get("sodiumContent")),
    )
    if all(value is None for value in vars(info).values()):
        return None
    return info


# =============================================================================
# Classification and metadata
# =============================================================================


def map_category(category: Any) -> RecipeCategory:
    """
    Map a free-text category to RecipeCategory.

    Examples:
        "Main Dish" -> MAIN_COURSE
        ["Dessert", "Cookies"] -> DESSERT
        "Something else" -> OTHER
    """
    if isinstance(category, list):
        category = category[0] if category else None
    if not category or not isinstance(category, str):
        return RecipeCategory.OTHER

    lower = category.lower()
    for keyword, value in CATEGORY_KEYWORDS:
        if keyword in lower:
            return value
    return RecipeCategory.OTHER


def parse_tags(keywords: Any) -> list[str]:
    """Parse keywords from a comma-separated string or a list."""
    if not keywords:
        return []
    if isinstance(keywords, str):
        return [k.strip() for k in keywords.split(",") if k.strip()]
    if isinstance(keywords, list):
        return [k.strip() for k in keywords if isinstance(k, str) and k.strip()]
    return []


def extract_image_url(image: Any) -> str | None:
    """
    Extract image URL from various formats.

    Handles:
        - Plain URL string
        - Dict with 'url', '@id' or 'contentUrl'
        - List of images (take first usable)
    """
    if not image:
        return None

    if isinstance(image, str):
        return image if image.startswith("http") else None

    if isinstance(image, dict):
        for key in ("url", "@id", "contentUrl"):
            url = image.get(key)
            if isinstance(url, str) and url.startswith("http"):
                return url
        return None

    if isinstance(image, list):
        for item in image:
            url = extract_image_url(item)
            if url:
                return url

    return None


def extract_author(author: Any) -> str | None:
    """Extract an author name from a string, Person object, or list."""
    if not author:
        return None
    if isinstance(author, str):
        return normalize_text(author) or None
    if isinstance(author, dict):
        name = author.get("name")
        return normalize_text(name) or None if isinstance(name, str) else None
    if isinstance(author, list):
        return extract_author(author[0])
    return None


def extract_cuisine(cuisine: Any) -> str | None:
    """Take the first cuisine when a list is given."""
    if isinstance(cuisine, list):
        cuisine = cuisine[0] if cuisine else None
    return normalize_text(cuisine) or None if isinstance(cuisine, str) else None
