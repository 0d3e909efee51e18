"""Schemas for entities parsed out of generated text.

Every model here derives from LenientModel: construction never fails on
missing or wrong-typed fields, it falls back to the defaults declared below.
Field aliases are the camelCase keys the generators are asked to emit and
the keys the produced JSON uses.
"""

from enum import Enum
from typing import ClassVar, Optional

from pydantic import Field, model_validator

from forkai.parsing.coercion import LenientModel
from forkai.utils.config import config


DEFAULT_CATEGORY = "🍽️ Recipe"


class RecipeDraft(LenientModel):
    """A generated recipe.

    `id` and `imageUrl` are owned by the orchestrator: the id is assigned after
    parsing and the image comes from the image resolution chain.
    """

    context_defaults: ClassVar[dict[str, str]] = {"servings": "servings"}

    id: str = ""
    title: str = "untitled"
    category: str = DEFAULT_CATEGORY
    image_url: Optional[str] = Field(None, alias="imageUrl")
    duration_minutes: int = Field(30, gt=0, le=1440, alias="durationMinutes")
    servings: int = Field(default_factory=lambda: config.DEFAULT_SERVINGS, gt=0, le=100)
    description: str = ""
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)


class VisionRecipe(RecipeDraft):
    """Recipe generated from a photo, with the detected ingredients it uses."""

    used_ingredients: list[str] = Field(default_factory=list, alias="usedIngredients")


class NutritionFacts(LenientModel):
    calories: float = Field(0, ge=0)
    proteins: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fats: float = Field(0, ge=0)
    fiber: float = Field(0, ge=0)
    sugar: float = Field(0, ge=0)
    sodium: float = Field(0, ge=0)


class Vitamin(LenientModel):
    name: str = ""
    amount: str = ""
    daily: str = ""


class ScoreColor(str, Enum):
    GREEN = "green"
    ORANGE = "orange"
    RED = "red"


def color_for_score(score: int) -> ScoreColor:
    """green for 7-10, orange for 4-6, red for 1-3."""
    if score >= 7:
        return ScoreColor.GREEN
    if score >= 4:
        return ScoreColor.ORANGE
    return ScoreColor.RED


class DietCompatibility(LenientModel):
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = Field(False, alias="glutenFree")
    dairy_free: bool = Field(False, alias="dairyFree")
    keto: bool = False
    low_carb: bool = Field(False, alias="lowCarb")


class NutritionReport(LenientModel):
    """Nutritional analysis of one recipe, per portion and for the whole dish."""

    per_portion: NutritionFacts = Field(default_factory=NutritionFacts, alias="perPortion")
    per_recipe: NutritionFacts = Field(default_factory=NutritionFacts, alias="perRecipe")
    vitamins: list[Vitamin] = Field(default_factory=list)
    score: int = Field(5, ge=1, le=10)
    score_label: str = Field("", alias="scoreLabel")
    score_color: Optional[ScoreColor] = Field(None, alias="scoreColor")
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    diet_compatibility: DietCompatibility = Field(default_factory=DietCompatibility, alias="dietCompatibility")
    glycemic_index: str = Field("", alias="glycemicIndex")
    tip: str = ""

    @model_validator(mode="after")
    def derive_score_color(self) -> "NutritionReport":
        if self.score_color is None:
            self.score_color = color_for_score(self.score)
        return self


class Substitute(LenientModel):
    name: str = ""
    ratio: str = ""
    impact: str = ""
    best_for: str = ""
    availability: str = ""
    emoji: str = ""
    tags: list[str] = Field(default_factory=list)


class SubstitutionResult(LenientModel):
    """Substitutes for one ingredient, ordered from closest to most creative."""

    context_defaults: ClassVar[dict[str, str]] = {"ingredient": "ingredient"}

    ingredient: str = ""
    reason: str = ""
    substitutes: list[Substitute] = Field(default_factory=list)
    tips: str = ""


class Meal(LenientModel):
    name: str = ""
    emoji: str = ""
    duration: int = Field(0, ge=0)
    calories: int = Field(0, ge=0)
    description: str = ""


class DayMeals(LenientModel):
    breakfast: Meal = Field(default_factory=Meal)
    lunch: Meal = Field(default_factory=Meal)
    dinner: Meal = Field(default_factory=Meal)
    snack: Meal = Field(default_factory=Meal)


class DayPlan(LenientModel):
    day: str = ""
    day_emoji: str = Field("", alias="dayEmoji")
    meals: DayMeals = Field(default_factory=DayMeals)
    total_calories: int = Field(0, ge=0, alias="totalCalories")
    tip: str = ""


class WeekSummary(LenientModel):
    avg_calories: int = Field(0, ge=0, alias="avgCalories")
    total_budget: str = Field("", alias="totalBudget")
    prep_time: str = Field("", alias="prepTime")


class MealPlan(LenientModel):
    """Seven-day meal plan with a weekly summary and shopping hints."""

    week_summary: WeekSummary = Field(default_factory=WeekSummary, alias="weekSummary")
    days: list[DayPlan] = Field(default_factory=list)
    shopping_highlights: list[str] = Field(default_factory=list, alias="shoppingHighlights")
    nutrition_balance: str = Field("", alias="nutritionBalance")
