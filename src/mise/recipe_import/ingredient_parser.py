"""Ingredient Parser - Transform raw ingredient strings to structured data.

Splits a line like "2 cups flour, sifted" into:
- quantity: Numeric amount (fractions normalized)
- unit: Measurement unit from a fixed vocabulary
- name: The ingredient itself
- notes: Preparation instructions after the first comma
- optional: Whether the line says "optional" or "to taste"

Parsing is idempotent on clean names: "flour" parses back to "flour".
"""

import logging
import re
from typing import Any

from .models import Ingredient
from .normalizer import decode_html_entities, normalize_text, parse_quantity

logger = logging.getLogger(__name__)

# Volume, mass, count, and size descriptors
UNITS = frozenset(
    {
        "cup", "cups",
        "tbsp", "tbs", "tablespoon", "tablespoons",
        "tsp", "teaspoon", "teaspoons",
        "ml", "l", "liter", "liters", "litre", "litres",
        "quart", "quarts", "pint", "pints", "gallon", "gallons",
        "oz", "ounce", "ounces", "lb", "lbs", "pound", "pounds",
        "g", "gram", "grams", "kg",
        "clove", "cloves", "slice", "slices", "piece", "pieces",
        "can", "cans", "package", "packages", "stick", "sticks",
        "bunch", "bunches", "head", "heads", "stalk", "stalks",
        "sprig", "sprigs", "pinch", "dash", "handful",
        "large", "medium", "small",
    }
)

_QUANTITY_RE = re.compile(
    r"^("
    r"\d*\s*[¼½¾⅓⅔⅛⅜⅝⅞]"  # unicode fraction, optionally after a whole number
    r"|\d+\s+\d+\s*/\s*\d+"  # 1 1/2
    r"|\d+\s*/\s*\d+"  # 1/2
    r"|\d+(?:\.\d+)?(?:\s*(?:-|–)\s*\d+(?:\.\d+)?)?"  # 2, 2.5, 2-3
    r")\s*"
)
_OPTIONAL_MARKER_RE = re.compile(r"\s*\((?:optional)\)\s*", re.IGNORECASE)


def _is_optional(text: str) -> bool:
    lower = text.lower()
    return "optional" in lower or "to taste" in lower


def parse_ingredient(raw: str) -> Ingredient:
    """
    Parse one raw ingredient line.

    Examples:
        "2 cups flour, sifted" -> quantity=2, unit="cups", name="flour", notes="sifted"
        "1 1/2 tsp salt" -> quantity=1.5, unit="tsp", name="salt"
        "3 large eggs" -> quantity=3, unit="large", name="eggs"
        "salt, to taste" -> name="salt", notes="to taste", optional=True
        "flour" -> name="flour"
    """
    text = normalize_text(decode_html_entities(raw or ""))
    if not text:
        return Ingredient(name="")

    optional = _is_optional(text)

    # (a) leading quantity
    quantity = None
    rest = text
    match = _QUANTITY_RE.match(text)
    if match:
        quantity = parse_quantity(match.group(1))
        rest = text[match.end() :]

    # (b) unit, only directly after a quantity so clean names stay untouched
    unit = None
    if quantity is not None:
        parts = rest.split(maxsplit=1)
        if parts and parts[0].lower().rstrip(".") in UNITS:
            unit = parts[0].lower().rstrip(".")
            rest = parts[1] if len(parts) > 1 else ""
            if rest.lower().startswith("of "):
                rest = rest[3:]

    # (c) + (d) name, then notes after the first comma
    name = rest.strip()
    notes = None
    comma = name.find(",")
    if comma > 0:
        notes = name[comma + 1 :].strip() or None
        name = name[:comma].strip()

    if _OPTIONAL_MARKER_RE.search(name):
        name = _OPTIONAL_MARKER_RE.sub(" ", name).strip()
        notes = notes or "optional"

    if not name:
        # "3 large" - the size word is the ingredient
        if unit:
            name, unit = unit, None
        else:
            name = text

    return Ingredient(
        name=name,
        quantity=quantity,
        unit=unit,
        notes=notes,
        optional=optional,
    )


def normalize_ingredients(ingredients: Any) -> list[str]:
    """
    Normalize ingredients to list of strings.

    Handles:
        - Single string (one ingredient per line)
        - List of strings
        - List of dicts with 'text' or 'name' field
    """
    if not ingredients:
        return []

    if isinstance(ingredients, str):
        ingredients = ingredients.splitlines()

    if not isinstance(ingredients, list):
        return []

    result = []
    for item in ingredients:
        if isinstance(item, str):
            text = normalize_text(item)
            if text:
                result.append(text)
        elif isinstance(item, dict):
            text = item.get("text") or item.get("name") or ""
            if isinstance(text, str) and text.strip():
                result.append(normalize_text(text))

    return result


def parse_ingredients_batch(raw_ingredients: Any) -> list[Ingredient]:
    """
    Parse multiple raw ingredient strings.

    Empty lines are dropped, so the result may be shorter than the input.
    """
    parsed = []
    for line in normalize_ingredients(raw_ingredients):
        ingredient = parse_ingredient(line)
        if ingredient.name:
            parsed.append(ingredient)
    logger.debug(f"Parsed {len(parsed)} ingredients")
    return parsed
