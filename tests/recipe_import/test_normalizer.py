"""Tests for the shared parsers in recipe_import.normalizer."""

from mise.recipe_import.models import RecipeCategory
from mise.recipe_import.normalizer import (
    decode_html_entities,
    extract_author,
    extract_image_url,
    find_meta_content,
    map_category,
    normalize_text,
    parse_duration,
    parse_nutrition,
    parse_quantity,
    parse_servings,
    parse_tags,
    strip_tags,
)


class TestParseDuration:
    """Tests for ISO 8601 and free-text duration parsing."""

    def test_parse_minutes_only(self):
        assert parse_duration("PT30M") == 30
        assert parse_duration("PT5M") == 5

    def test_parse_hours_and_minutes(self):
        assert parse_duration("PT1H30M") == 90
        assert parse_duration("PT2H15M") == 135

    def test_parse_days_and_seconds(self):
        assert parse_duration("P1DT2H") == 1560
        assert parse_duration("PT90S") == 2
        assert parse_duration("P0DT0H20M") == 20

    def test_parse_plain_number(self):
        assert parse_duration("45") == 45
        assert parse_duration(45) == 45

    def test_parse_free_text(self):
        assert parse_duration("1 hour 15 mins") == 75
        assert parse_duration("20 minutes") == 20
        assert parse_duration("2 hrs") == 120

    def test_unknown_values(self):
        assert parse_duration(None) is None
        assert parse_duration("") is None
        assert parse_duration("soon") is None
        assert parse_duration("PT") is None
        assert parse_duration(-5) is None


class TestParseQuantity:
    def test_whole_and_decimal(self):
        assert parse_quantity("2") == 2.0
        assert parse_quantity("1.5") == 1.5
        assert parse_quantity(3) == 3.0

    def test_fractions(self):
        assert parse_quantity("1 1/2") == 1.5
        assert parse_quantity("1/2") == 0.5
        assert parse_quantity("3/4") == 0.75

    def test_unicode_fractions(self):
        assert parse_quantity("¾") == 0.75
        assert parse_quantity("1½") == 1.5
        assert parse_quantity("2 ¼") == 2.25

    def test_range_takes_lower_bound(self):
        assert parse_quantity("2-3") == 2.0

    def test_garbage_is_unknown(self):
        assert parse_quantity("garbage") is None
        assert parse_quantity("") is None
        assert parse_quantity(None) is None
        assert parse_quantity("1/0") is None
        assert parse_quantity(float("nan")) is None


class TestParseServings:
    def test_parse_plain_number(self):
        assert parse_servings("4") == 4
        assert parse_servings(6) == 6
        assert parse_servings(4.0) == 4

    def test_parse_with_text(self):
        assert parse_servings("4 servings") == 4
        assert parse_servings("Serves 8") == 8
        assert parse_servings("Makes 12 cookies") == 12

    def test_parse_list_takes_first_parseable(self):
        assert parse_servings(["8", "8 slices"]) == 8
        assert parse_servings(["a dozen", "12 rolls"]) == 12

    def test_parse_none_or_empty(self):
        assert parse_servings(None) is None
        assert parse_servings("") is None
        assert parse_servings([]) is None


class TestText:
    def test_normalize_text(self):
        assert normalize_text("  Mix \n\t well  ") == "Mix well"
        assert normalize_text(None) == ""

    def test_decode_html_entities(self):
        assert decode_html_entities("Mac &amp; Cheese") == "Mac & Cheese"
        assert decode_html_entities("Caf&#233;") == "Café"
        assert decode_html_entities("&#x27;quoted&#x27;") == "'quoted'"

    def test_strip_tags(self):
        assert strip_tags("<p>Stir <b>gently</b></p>") == "Stir gently"
        assert strip_tags(None) == ""

    def test_find_meta_content_either_order(self):
        html = (
            '<meta property="og:title" content="Pasta &amp; Peas">'
            '<meta content="https://example.com/pasta.jpg" property="og:image">'
        )
        assert find_meta_content(html, "og:title") == "Pasta & Peas"
        assert find_meta_content(html, "og:image") == "https://example.com/pasta.jpg"
        assert find_meta_content(html, "og:description") is None


class TestMetadata:
    def test_map_category(self):
        assert map_category("Main Dish") == RecipeCategory.MAIN_COURSE
        assert map_category(["Dessert", "Cookies"]) == RecipeCategory.DESSERT
        assert map_category("Something else") == RecipeCategory.OTHER
        assert map_category(None) == RecipeCategory.OTHER

    def test_parse_tags(self):
        assert parse_tags("easy, weeknight , ") == ["easy", "weeknight"]
        assert parse_tags(["vegan", "", 3]) == ["vegan"]
        assert parse_tags(None) == []

    def test_extract_image_url(self):
        assert extract_image_url("https://example.com/a.jpg") == "https://example.com/a.jpg"
        assert extract_image_url({"url": "https://example.com/b.jpg"}) == "https://example.com/b.jpg"
        assert extract_image_url([{"@id": "#logo"}, "https://example.com/c.jpg"]) == "https://example.com/c.jpg"
        assert extract_image_url("/relative.jpg") is None

    def test_extract_author(self):
        assert extract_author("Jane") == "Jane"
        assert extract_author({"@type": "Person", "name": " Jane  Doe "}) == "Jane Doe"
        assert extract_author([{"name": "First"}, {"name": "Second"}]) == "First"
        assert extract_author({"url": "https://example.com"}) is None

    def test_parse_nutrition(self):
        info = parse_nutrition({"calories": "240 kcal", "proteinContent": "4.5 g", "sodiumContent": "300 mg"})
        assert info.calories_per_serving == 240
        assert info.protein_grams == 4.5
        assert info.sodium_mg == 300
        assert info.fat_grams is None
        assert parse_nutrition({"calories": "n/a"}) is None
        assert parse_nutrition("240") is None
