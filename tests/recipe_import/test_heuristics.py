"""Tests for the HTML heuristics extractor and its individual strategies."""

from mise.recipe_import.extractors.heuristics import (
    INGREDIENT_CONTAINER_CLASSES,
    INGREDIENT_HEADING_RE,
    INGREDIENT_ITEM_CLASSES,
    INSTRUCTION_CONTAINER_CLASSES,
    INSTRUCTION_HEADING_RE,
    HeuristicsExtractor,
    extract_title_from_page,
    find_recipe_container,
    items_by_class,
    items_from_container,
    items_under_heading,
)
from mise.recipe_import.models import ExtractionMethod
from mise.recipe_import.normalizer import make_soup


class TestStrategies:
    def test_container_by_class(self):
        soup = make_soup('<div class="recipe-instructions"><ol><li>Boil.</li><li>Drain.</li></ol></div>')
        assert items_from_container(soup, INSTRUCTION_CONTAINER_CLASSES) == ["Boil.", "Drain."]

    def test_container_without_items_is_skipped(self):
        soup = make_soup('<p class="instructions-note">none here</p><ul class="steps"><li>Stir.</li></ul>')
        assert items_from_container(soup, INSTRUCTION_CONTAINER_CLASSES) == ["Stir."]

    def test_unclosed_list_items(self):
        soup = make_soup('<ul class="ingredients"><li>1 egg<li>2 cups milk</ul>')
        assert items_from_container(soup, INGREDIENT_CONTAINER_CLASSES) == ["1 egg", "2 cups milk"]

    def test_item_by_exact_class(self):
        soup = make_soup(
            '<span class="tasty-recipes-ingredient">1 cup rice</span>'
            '<span class="tasty-recipes-ingredient-note">ignored</span>'
            '<span class="tasty-recipes-ingredient">2 cups water</span>'
        )
        assert items_by_class(soup, INGREDIENT_ITEM_CLASSES, "ingredient") == ["1 cup rice", "2 cups water"]

    def test_item_by_li_class_fragment(self):
        soup = make_soup('<ul><li class="my-ingredient-row">1 onion</li><li class="other">x</li></ul>')
        assert items_by_class(soup, INGREDIENT_ITEM_CLASSES, "ingredient") == ["1 onion"]

    def test_list_under_heading(self):
        soup = make_soup('<h3>Ingredients:</h3>\n<div class="list"><ul><li>4 eggs</li><li>Salt</li></ul></div>')
        assert items_under_heading(soup, INGREDIENT_HEADING_RE) == ["4 eggs", "Salt"]

    def test_list_under_bold_label(self):
        soup = make_soup("<p><strong>Ingredients</strong></p><ul><li>1 lemon</li></ul>")
        assert items_under_heading(soup, INGREDIENT_HEADING_RE) == ["1 lemon"]

    def test_ordered_list_under_directions(self):
        soup = make_soup("<h2>Directions</h2>\n<ol><li>Whisk.</li><li>Fry.</li></ol>")
        assert items_under_heading(soup, INSTRUCTION_HEADING_RE) == ["Whisk.", "Fry."]

    def test_sentence_mentioning_ingredients_is_not_a_heading(self):
        soup = make_soup("<p>Gather the ingredients for the sauce first.</p><ul><li>Home</li></ul>")
        assert items_under_heading(soup, INGREDIENT_HEADING_RE) == []

    def test_no_heading(self):
        assert items_under_heading(make_soup("<ul><li>x</li></ul>"), INGREDIENT_HEADING_RE) == []

    def test_recipe_container_uses_class_tokens(self):
        soup = make_soup('<div class="wprm-recipe-ingredient">x</div><div class="wprm-recipe">card</div>')
        container = find_recipe_container(soup)
        assert container.get_text() == "card"


class TestTitleFallback:
    def test_h1(self):
        assert extract_title_from_page(make_soup("<h1> Chili <small>con carne</small></h1>")) == "Chili con carne"

    def test_og_title(self):
        html = '<head><meta property="og:title" content="Green Curry"><title>ignored</title></head>'
        assert extract_title_from_page(make_soup(html)) == "Green Curry"

    def test_title_tag_cut_at_separator(self):
        assert extract_title_from_page(make_soup("<title>Pad Thai | Site</title>")) == "Pad Thai"
        assert extract_title_from_page(make_soup("<title>Pad Thai - My Blog</title>")) == "Pad Thai"
        assert extract_title_from_page(make_soup("<title>Stir-Fried Noodles</title>")) == "Stir-Fried Noodles"

    def test_nothing(self):
        assert extract_title_from_page(make_soup("<p>hi</p>")) is None


class TestHeuristicsExtractor:
    def setup_method(self):
        self.extractor = HeuristicsExtractor()

    def test_priority_and_method(self):
        assert self.extractor.priority == 30
        assert self.extractor.method == ExtractionMethod.HEURISTICS

    def test_can_handle(self, wprm_page, news_page):
        assert self.extractor.can_handle(wprm_page)
        assert not self.extractor.can_handle(news_page)

    def test_wprm_card(self, wprm_page):
        result = self.extractor.extract(wprm_page, "https://blog.example/popovers")

        assert result.success
        assert 0.5 <= result.confidence < 0.9
        recipe = result.recipe
        assert recipe.title == "Simple Popovers"
        assert len(recipe.components[0].ingredients) == 5
        assert recipe.components[0].ingredients[4].notes == "melted"
        assert [s.order for s in recipe.components[0].steps] == [1, 2, 3, 4]
        assert recipe.components[0].steps[3].instruction == "Bake for 20 minutes."

    def test_metadata_from_classes(self):
        html = """
        <div class="recipe-card">
          <h2 class="recipe-card-title">Lentil Soup</h2>
          <div class="recipe-summary">Hearty and cheap.</div>
          <span class="prep-time"><span class="label">Prep</span> 10 mins</span>
          <span class="cook-time">PT40M</span>
          <span class="servings">Serves 6</span>
          <img class="recipe-image" src="https://example.com/soup.jpg">
          <ul class="ingredients"><li>1 cup lentils</li><li>1 onion</li><li>4 cups stock</li></ul>
          <ol class="instructions"><li>Saute onion.</li><li>Add lentils and stock.</li></ol>
        </div>"""
        result = self.extractor.extract(html, "https://example.com/soup")

        assert result.success
        recipe = result.recipe
        assert recipe.title == "Lentil Soup"
        assert recipe.description == "Hearty and cheap."
        assert recipe.prep_time_minutes == 10
        assert recipe.cook_time_minutes == 40
        assert recipe.servings == 6
        assert recipe.image_url == "https://example.com/soup.jpg"
        # 0.3 + 0.1 title + 0.05 description + 0.15 + 0.15 + 0.05 + 0.05 + 0.03 + 0.02
        assert result.confidence == 0.9

    def test_instructions_only_page_is_not_a_recipe(self):
        html = '<div class="recipe-instructions"><ol><li>Stir.</li></ol></div>'
        result = self.extractor.extract(html, "https://example.com")

        assert not result.success
        assert result.partial_data is None
        assert result.error == "No recipe patterns found"
