"""Source detection - classify a URL before any fetching happens."""

import logging
from types import MappingProxyType
from urllib.parse import urlparse

from .models import SourceDetectionResult, UrlSource

logger = logging.getLogger(__name__)

# Recipe sites known to publish structured recipe data (high success rate)
KNOWN_RECIPE_SITES: MappingProxyType[str, str] = MappingProxyType(
    {
        "allrecipes.com": "AllRecipes",
        "foodnetwork.com": "Food Network",
        "epicurious.com": "Epicurious",
        "seriouseats.com": "Serious Eats",
        "bonappetit.com": "Bon Appétit",
        "delish.com": "Delish",
        "tasty.co": "Tasty",
        "simplyrecipes.com": "Simply Recipes",
        "food52.com": "Food52",
        "cooking.nytimes.com": "NYT Cooking",
        "thekitchn.com": "The Kitchn",
        "budgetbytes.com": "Budget Bytes",
        "cookieandkate.com": "Cookie and Kate",
        "minimalistbaker.com": "Minimalist Baker",
        "skinnytaste.com": "Skinnytaste",
        "damndelicious.net": "Damn Delicious",
        "pinchofyum.com": "Pinch of Yum",
        "halfbakedharvest.com": "Half Baked Harvest",
        "smittenkitchen.com": "Smitten Kitchen",
        "loveandlemons.com": "Love and Lemons",
        "sallysbakingaddiction.com": "Sally's Baking Addiction",
        "kingarthurbaking.com": "King Arthur Baking",
        "barefootcontessa.com": "Barefoot Contessa",
        "marthastewart.com": "Martha Stewart",
        "bettycrocker.com": "Betty Crocker",
        "pillsbury.com": "Pillsbury",
        "food.com": "Food.com",
        "yummly.com": "Yummly",
        "myrecipes.com": "MyRecipes",
        "eatingwell.com": "EatingWell",
        "tasteofhome.com": "Taste of Home",
        "recipetineats.com": "RecipeTin Eats",
        "justonecookbook.com": "Just One Cookbook",
        "gimmesomeoven.com": "Gimme Some Oven",
        "hostthetoast.com": "Host The Toast",
        "iamafoodblog.com": "I Am A Food Blog",
        "cafedelites.com": "Cafe Delites",
        "therecipecritic.com": "The Recipe Critic",
        "natashaskitchen.com": "Natasha's Kitchen",
        "wellplated.com": "Well Plated",
        "onceuponachef.com": "Once Upon a Chef",
        "inspiredtaste.net": "Inspired Taste",
    }
)


def _matches_domain(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith(f".{domain}")


def is_instagram(hostname: str) -> bool:
    return _matches_domain(hostname, "instagram.com") or hostname == "instagr.am"


def is_facebook(hostname: str) -> bool:
    return any(
        _matches_domain(hostname, domain)
        for domain in ("facebook.com", "fb.com", "fb.watch", "fbcdn.net")
    )


def is_youtube(hostname: str) -> bool:
    return any(
        _matches_domain(hostname, domain)
        for domain in ("youtube.com", "youtu.be", "youtube-nocookie.com")
    )


def is_tiktok(hostname: str) -> bool:
    return _matches_domain(hostname, "tiktok.com")


# Social platforms are checked before the recipe-site registry
SOCIAL_PLATFORMS = (
    (UrlSource.INSTAGRAM, is_instagram),
    (UrlSource.FACEBOOK, is_facebook),
    (UrlSource.YOUTUBE, is_youtube),
    (UrlSource.TIKTOK, is_tiktok),
)


def _normalize_hostname(hostname: str | None) -> str:
    hostname = (hostname or "").lower().rstrip(".")
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def find_known_recipe_site(hostname: str) -> str | None:
    """Look up a hostname (or its parent domain) in the known-site registry."""
    if hostname in KNOWN_RECIPE_SITES:
        return KNOWN_RECIPE_SITES[hostname]

    for domain, name in KNOWN_RECIPE_SITES.items():
        if hostname.endswith(f".{domain}"):
            return name

    return None


def detect_source(url: str) -> SourceDetectionResult:
    """
    Detect the source type of a URL.

    Never raises: anything unparseable is treated as a generic website.
    """
    try:
        parsed = urlparse((url or "").strip())
        hostname = _normalize_hostname(parsed.hostname)
        pathname = (parsed.path or "").lower()
    except ValueError:
        logger.debug(f"Could not parse URL for source detection: {url!r}")
        return SourceDetectionResult(source=UrlSource.GENERIC_WEBSITE)

    for source, predicate in SOCIAL_PLATFORMS:
        if predicate(hostname):
            return SourceDetectionResult(source=source)

    if pathname.endswith(".pdf"):
        return SourceDetectionResult(source=UrlSource.PDF)

    site_name = find_known_recipe_site(hostname)
    if site_name:
        return SourceDetectionResult(
            source=UrlSource.RECIPE_SITE,
            is_known_recipe_site=True,
            site_name=site_name,
        )

    return SourceDetectionResult(source=UrlSource.GENERIC_WEBSITE)


def get_known_recipe_sites() -> list[dict[str, str]]:
    """List known recipe sites for display."""
    return [{"domain": domain, "name": name} for domain, name in KNOWN_RECIPE_SITES.items()]
