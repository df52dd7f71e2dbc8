"""
Pytest configuration and fixtures for Mise tests.
"""

import os

import pytest

# Set test environment before importing mise modules
os.environ["MISE_ENV"] = "development"
os.environ["MISE_LOG_IMPORTS"] = "false"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)

from mise.recipe_import import (  # noqa: E402
    AIExtractionError,
    AIRecipeOutput,
    FetchedPage,
    FetchError,
    ImportLogger,
    Ingredient,
    ParsedRecipe,
    RecipeAI,
    RecipeComponent,
    RecipeImportPipeline,
    Step,
)


# =============================================================================
# Fakes
# =============================================================================


class FakeFetcher:
    """In-memory page fetcher. Unknown URLs fail like a 404."""

    def __init__(self, pages: dict[str, str] | None = None, json_docs: dict[str, dict] | None = None):
        self.pages = pages or {}
        self.json_docs = json_docs or {}
        self.fetched: list[str] = []
        self.json_fetched: list[str] = []

    async def fetch(self, url, headers=None):
        self.fetched.append(url)
        if url not in self.pages:
            raise FetchError("Recipe page not found", 404)
        return FetchedPage(url=url, final_url=url, html=self.pages[url])

    async def fetch_json(self, url):
        self.json_fetched.append(url)
        for prefix, doc in self.json_docs.items():
            if url.startswith(prefix):
                return doc
        return None


class FakeRecipeAI(RecipeAI):
    """Returns canned recipes and records every call."""

    def __init__(
        self,
        text_recipe: ParsedRecipe | None = None,
        url_recipe: ParsedRecipe | None = None,
        error: Exception | None = None,
        tokens_used: int | None = 123,
    ):
        self.text_recipe = text_recipe
        self.url_recipe = url_recipe
        self.error = error
        self.tokens_used = tokens_used
        self.text_calls: list[dict] = []
        self.url_calls: list[dict] = []

    async def parse_from_text(self, text, *, source=None, author=None):
        self.text_calls.append({"text": text, "source": source, "author": author})
        if self.error:
            raise self.error
        if self.text_recipe is None:
            raise AIExtractionError("No canned text recipe")
        return AIRecipeOutput(recipe=self.text_recipe, tokens_used=self.tokens_used)

    async def parse_from_url(self, url, *, html=None):
        self.url_calls.append({"url": url, "html": html})
        if self.error:
            raise self.error
        if self.url_recipe is None:
            raise AIExtractionError("No canned URL recipe")
        return AIRecipeOutput(recipe=self.url_recipe, tokens_used=self.tokens_used)


class ListSink:
    """Import log sink that keeps records in memory."""

    def __init__(self):
        self.records = []

    def write(self, record):
        self.records.append(record)


def build_recipe(
    title: str = "Test Recipe",
    ingredients: int = 3,
    steps: int = 2,
    confidence: float = 0.0,
) -> ParsedRecipe:
    return ParsedRecipe(
        title=title,
        components=[
            RecipeComponent(
                name="Main",
                ingredients=[Ingredient(name=f"ingredient {i}", quantity=1.0, unit="cup") for i in range(ingredients)],
                steps=[Step(order=i, instruction=f"Do step {i}.") for i in range(1, steps + 1)],
            )
        ],
        confidence=confidence,
    )


@pytest.fixture
def recipe_factory():
    """Build a ParsedRecipe with a given number of ingredients and steps."""
    return build_recipe


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def fake_ai():
    return FakeRecipeAI()


@pytest.fixture
def log_sink():
    return ListSink()


@pytest.fixture
def make_pipeline(fake_fetcher, fake_ai, log_sink):
    """Pipeline factory wired to fakes; keyword overrides replace any collaborator."""

    def factory(**overrides):
        kwargs = {
            "fetcher": fake_fetcher,
            "ai": fake_ai,
            "import_logger": ImportLogger(sinks=[log_sink], enabled=True),
        }
        kwargs.update(overrides)
        return RecipeImportPipeline(**kwargs)

    return factory


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    from unittest.mock import MagicMock

    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.insert.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


# =============================================================================
# Sample pages
# =============================================================================


@pytest.fixture
def json_ld_page():
    """Recipe blog page with a full JSON-LD Recipe in an @graph."""
    return """<!DOCTYPE html>
<html><head>
<title>Best Banana Bread | Example Kitchen</title>
<script type="application/ld+json">
{
  "@context": "https://schema.org",
  "@graph": [
    {"@type": "WebSite", "name": "Example Kitchen"},
    {
      "@type": "Recipe",
      "name": "Best Banana Bread",
      "description": "Moist &amp; easy banana bread.",
      "image": ["https://example.com/banana.jpg"],
      "author": {"@type": "Person", "name": "Jane Baker"},
      "prepTime": "PT15M",
      "cookTime": "PT1H",
      "recipeYield": ["8", "8 slices"],
      "recipeCategory": "Dessert",
      "recipeCuisine": ["American"],
      "keywords": "banana, quick bread",
      "recipeIngredient": [
        "3 ripe bananas, mashed",
        "1/2 cup butter, melted",
        "1 1/2 cups flour",
        "1 tsp baking soda"
      ],
      "recipeInstructions": [
        {"@type": "HowToStep", "text": "Preheat the oven to 350F."},
        {"@type": "HowToStep", "text": "Mix the wet ingredients."},
        {"@type": "HowToStep", "text": "Fold in the flour and bake."}
      ],
      "nutrition": {"@type": "NutritionInformation", "calories": "240 kcal", "fatContent": "9 g"}
    }
  ]
}
</script>
</head><body><h1>Best Banana Bread</h1></body></html>"""


@pytest.fixture
def microdata_page():
    """Older recipe page using inline schema.org microdata."""
    return """<html><body>
<div itemscope itemtype="http://schema.org/Recipe">
  <h1 itemprop="name">Grandma's Pancakes</h1>
  <p itemprop="description">Fluffy weekend pancakes.</p>
  <img itemprop="image" src="https://example.com/pancakes.jpg">
  <meta itemprop="prepTime" content="PT10M">
  <meta itemprop="cookTime" content="PT15M">
  <span itemprop="recipeYield">Serves 4</span>
  <ul>
    <li itemprop="recipeIngredient">2 cups flour</li>
    <li itemprop="recipeIngredient">2 eggs</li>
    <li itemprop="recipeIngredient">1 1/2 cups milk</li>
  </ul>
  <ol itemprop="recipeInstructions">
    <li>Whisk the dry ingredients.</li>
    <li>Add eggs and milk.</li>
    <li>Cook on a hot griddle.</li>
  </ol>
</div>
</body></html>"""


@pytest.fixture
def wprm_page():
    """WP Recipe Maker card with no structured data."""
    ingredients = "\n".join(
        f'<li class="wprm-recipe-ingredient">{line}</li>'
        for line in ("2 cups flour", "1 tsp salt", "3 large eggs", "1 cup milk", "2 tbsp butter, melted")
    )
    instructions = "\n".join(
        f'<li class="wprm-recipe-instruction"><div class="wprm-recipe-instruction-text">{line}</div></li>'
        for line in ("Mix the flour and salt.", "Beat in the eggs.", "Stir in the milk.", "Bake for 20 minutes.")
    )
    return f"""<html><head><title>Simple Popovers - My Food Blog</title></head><body>
<div class="wprm-recipe wprm-recipe-template-basic">
  <h2 class="wprm-recipe-name">Simple Popovers</h2>
  <ul>
{ingredients}
  </ul>
  <ol>
{instructions}
  </ol>
</div>
</body></html>"""


@pytest.fixture
def news_page():
    """A real page with no recipe anywhere on it."""
    return """<html><head><title>City council approves new budget</title>
<meta property="og:title" content="City council approves new budget">
</head><body>
<article class="news-story">
  <h1>City council approves new budget</h1>
  <p>The council voted 7-2 on Tuesday to approve the budget.</p>
  <p>Officials said the plan funds road repairs and parks.</p>
</article>
</body></html>"""
