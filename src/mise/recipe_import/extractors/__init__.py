"""Free extraction tiers, run in priority order before any paid fallback."""

from .base import BaseExtractor
from .heuristics import HeuristicsExtractor
from .json_ld import JsonLdExtractor
from .microdata import MicrodataExtractor


def default_extractors() -> list[BaseExtractor]:
    """Tier 1-3 extractors sorted by priority."""
    return sorted(
        [JsonLdExtractor(), MicrodataExtractor(), HeuristicsExtractor()],
        key=lambda extractor: extractor.priority,
    )


__all__ = [
    "BaseExtractor",
    "HeuristicsExtractor",
    "JsonLdExtractor",
    "MicrodataExtractor",
    "default_extractors",
]
