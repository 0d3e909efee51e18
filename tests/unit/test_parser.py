"""Unit tests for the structured response parser and lenient schema coercion.

Tests cover:
- Code fence stripping and greedy span extraction
- NoStructuredPayloadError / InvalidJsonError classification
- Field defaulting for missing and malformed values
- Request-level context defaults (servings, ingredient)
- Idempotence
"""

import pytest

from forkai.models.schemas import (
    DEFAULT_CATEGORY,
    MealPlan,
    NutritionReport,
    RecipeDraft,
    ScoreColor,
    SubstitutionResult,
    VisionRecipe,
)
from forkai.parsing.coercion import MISSING, coerce_int, coerce_value
from forkai.parsing.structured import Shape, extract_json_span, parse, strip_code_fences
from forkai.utils.errors import InvalidJsonError, NoStructuredPayloadError


class TestExtraction:
    """Test phase 1: locating the JSON span."""

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_extract_object_with_surrounding_prose(self):
        raw = 'Here is your recipe:\n{"title": "Soup"}\nEnjoy!'
        assert extract_json_span(raw, Shape.OBJECT) == '{"title": "Soup"}'

    def test_extract_array_is_greedy(self):
        raw = 'Sure! [{"title": "A"}, {"title": "B"}] Hope that helps [smile]'
        assert extract_json_span(raw, Shape.ARRAY).startswith('[{"title": "A"}')
        assert extract_json_span(raw, Shape.ARRAY).endswith("[smile]")

    def test_no_span_raises(self):
        with pytest.raises(NoStructuredPayloadError):
            extract_json_span("I cannot help with that.", Shape.OBJECT)

    def test_array_requested_but_only_object_present(self):
        with pytest.raises(NoStructuredPayloadError):
            parse('{"title": "Soup"}', Shape.ARRAY, RecipeDraft)

    def test_invalid_json_is_not_repaired(self):
        with pytest.raises(InvalidJsonError):
            parse('{"title": "Soup",}', Shape.OBJECT, RecipeDraft)

    def test_errors_map_to_bad_gateway(self):
        assert NoStructuredPayloadError.status_code == 502
        assert InvalidJsonError.status_code == 502


class TestRecipeDefaults:
    """Test phase 3: every field falls back to its default."""

    def test_empty_object_yields_fully_defaulted_recipe(self):
        recipe = parse("{}", Shape.OBJECT, RecipeDraft)

        assert recipe.title == "untitled"
        assert recipe.category == DEFAULT_CATEGORY
        assert recipe.duration_minutes == 30
        assert recipe.servings == 4
        assert recipe.ingredients == []
        assert recipe.steps == []
        assert recipe.image_url is None

    def test_servings_default_comes_from_context(self):
        recipe = parse("{}", Shape.OBJECT, RecipeDraft, context={"servings": 2})
        assert recipe.servings == 2

    def test_explicit_servings_wins_over_context(self):
        recipe = parse('{"servings": 6}', Shape.OBJECT, RecipeDraft, context={"servings": 2})
        assert recipe.servings == 6

    def test_numeric_strings_are_coerced(self):
        recipe = parse('{"durationMinutes": "45 min", "servings": "3"}', Shape.OBJECT, RecipeDraft)
        assert recipe.duration_minutes == 45
        assert recipe.servings == 3

    @pytest.mark.parametrize("duration", ["0", "-5", '"soon"', "null", "true", "99999"])
    def test_out_of_range_duration_defaults(self, duration):
        recipe = parse(f'{{"durationMinutes": {duration}}}', Shape.OBJECT, RecipeDraft)
        assert recipe.duration_minutes == 30

    def test_non_list_ingredients_default_to_empty(self):
        recipe = parse('{"ingredients": "flour, eggs", "steps": null}', Shape.OBJECT, RecipeDraft)
        assert recipe.ingredients == []
        assert recipe.steps == []

    def test_non_string_list_items_are_dropped(self):
        recipe = parse('{"ingredients": ["2 eggs", 3, null, "", "flour"]}', Shape.OBJECT, RecipeDraft)
        assert recipe.ingredients == ["2 eggs", "flour"]

    def test_blank_title_defaults(self):
        assert parse('{"title": "   "}', Shape.OBJECT, RecipeDraft).title == "untitled"

    def test_unknown_keys_are_ignored(self):
        recipe = parse('{"title": "Soup", "calories": 300}', Shape.OBJECT, RecipeDraft)
        assert recipe.title == "Soup"
        assert not hasattr(recipe, "calories")

    def test_fenced_payload(self):
        raw = '```json\n{"title": "Pasta al limone", "ingredients": ["pasta"]}\n```'
        recipe = parse(raw, Shape.OBJECT, RecipeDraft)
        assert recipe.title == "Pasta al limone"
        assert recipe.ingredients == ["pasta"]


class TestArrays:
    def test_non_object_elements_are_dropped(self):
        recipes = parse('[{"title": "A"}, "B", 3, {"title": "C"}]', Shape.ARRAY, RecipeDraft)
        assert [recipe.title for recipe in recipes] == ["A", "C"]

    def test_vision_recipe_used_ingredients(self):
        raw = '[{"title": "Omelette", "usedIngredients": ["eggs", "cheese"]}]'
        (recipe,) = parse(raw, Shape.ARRAY, VisionRecipe, context={"servings": 3})
        assert recipe.used_ingredients == ["eggs", "cheese"]
        assert recipe.servings == 3

    def test_empty_array(self):
        assert parse("[]", Shape.ARRAY, RecipeDraft) == []


class TestIdempotence:
    def test_parsing_twice_yields_identical_output(self):
        raw = '```json\n[{"title": "A", "durationMinutes": "20"}, {"steps": "x"}]\n```'
        first = [recipe.model_dump_json(by_alias=True) for recipe in parse(raw, Shape.ARRAY, RecipeDraft)]
        second = [recipe.model_dump_json(by_alias=True) for recipe in parse(raw, Shape.ARRAY, RecipeDraft)]
        assert first == second

    def test_reparsing_serialized_output_is_stable(self):
        recipe = parse('{"title": "Soup", "servings": "2 people"}', Shape.OBJECT, RecipeDraft)
        again = parse(recipe.model_dump_json(by_alias=True), Shape.OBJECT, RecipeDraft)
        assert again == recipe


class TestNestedSchemas:
    def test_nutrition_defaults(self):
        report = parse("{}", Shape.OBJECT, NutritionReport)

        assert report.score == 5
        assert report.score_color is ScoreColor.ORANGE
        assert report.per_portion.calories == 0
        assert report.diet_compatibility.vegan is False
        assert report.vitamins == []

    def test_nutrition_score_color_derived(self):
        assert parse('{"score": 9}', Shape.OBJECT, NutritionReport).score_color is ScoreColor.GREEN
        assert parse('{"score": "2"}', Shape.OBJECT, NutritionReport).score_color is ScoreColor.RED

    def test_nutrition_explicit_color_kept(self):
        report = parse('{"score": 9, "scoreColor": " Orange "}', Shape.OBJECT, NutritionReport)
        assert report.score_color is ScoreColor.ORANGE

    def test_nutrition_partial_nested_values(self):
        raw = '{"perPortion": {"calories": "520 kcal", "proteins": -3}, "dietCompatibility": {"glutenFree": true}}'
        report = parse(raw, Shape.OBJECT, NutritionReport)

        assert report.per_portion.calories == 520
        assert report.per_portion.proteins == 0
        assert report.diet_compatibility.gluten_free is True

    def test_nutrition_huge_integer_defaults(self):
        raw = '{"perPortion": {"calories": 1' + "0" * 400 + ', "proteins": 12}}'
        report = parse(raw, Shape.OBJECT, NutritionReport)

        assert report.per_portion.calories == 0
        assert report.per_portion.proteins == 12

    def test_substitution_ingredient_from_context(self):
        result = parse('{"substitutes": [{"name": "Oat milk", "tags": ["vegan"]}]}', Shape.OBJECT,
                       SubstitutionResult, context={"ingredient": "milk"})
        assert result.ingredient == "milk"
        assert result.substitutes[0].name == "Oat milk"
        assert result.substitutes[0].tags == ["vegan"]

    def test_meal_plan_defaults_for_missing_meals(self):
        raw = '{"days": [{"day": "Monday", "meals": {"lunch": {"name": "Salad", "calories": "450"}}}]}'
        plan = parse(raw, Shape.OBJECT, MealPlan)

        monday = plan.days[0]
        assert monday.meals.lunch.calories == 450
        assert monday.meals.dinner.name == ""
        assert plan.week_summary.avg_calories == 0

    def test_serializes_with_camel_case_keys(self):
        payload = parse("{}", Shape.OBJECT, RecipeDraft).model_dump(by_alias=True)
        assert "durationMinutes" in payload
        assert "imageUrl" in payload


class TestCoercion:
    @pytest.mark.parametrize("value,expected", [(30, 30), (30.7, 30), ("30", 30), ("30 min", 30), ("2,5", 2)])
    def test_coerce_int(self, value, expected):
        assert coerce_int(value) == expected

    @pytest.mark.parametrize("value", [True, None, "about thirty", [], float("nan")])
    def test_coerce_int_rejects(self, value):
        assert coerce_int(value) is MISSING

    def test_coerce_float_rejects_overflow(self):
        assert coerce_value(10 ** 400, float) is MISSING
        assert coerce_value("9" * 400, float) is MISSING

    def test_huge_numeric_string_duration_defaults(self):
        recipe = parse('{"durationMinutes": "' + "9" * 400 + '"}', Shape.OBJECT, RecipeDraft)
        assert recipe.duration_minutes == 30

    def test_coerce_value_optional(self):
        assert coerce_value(None, str | None) is None
        assert coerce_value(5, str | None) is MISSING
