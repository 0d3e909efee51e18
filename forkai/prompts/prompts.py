"""System instructions and user turns for each generation task.

Each factory returns plain strings. Constraints that depend on the request
(servings, recipe counts, minimum ingredients/steps) are interpolated here so
the orchestrators never assemble prompt text themselves.
"""

NO_INGREDIENTS_MARKER = "No ingredients detected"

DEFAULT_CHAT_INSTRUCTIONS = "You are an expert cooking assistant."

_RECIPE_FIELDS = (
    '"title":"Recipe name","category":"🍽️ Category","durationMinutes":30,"servings":{servings},'
    '"description":"Short, appetizing description in 1-2 sentences.",'
    '"ingredients":["200 g of ...","3 ..."],"steps":["Detailed step 1.","Step 2."]'
)


def _recipe_object(servings: int, extra: str = "") -> str:
    return "{" + _RECIPE_FIELDS.format(servings=servings) + extra + "}"


def get_recipe_instructions(servings: int, min_ingredients: int, min_steps: int) -> str:
    """Instructions for a single recipe answering a free-text request."""
    return f"""You are an expert chef. Create one recipe that matches the user's request.
The recipe serves {servings} people, lists at least {min_ingredients} ingredients with quantities, and has at least {min_steps} detailed steps.
Answer ONLY with a valid JSON object, no markdown, no comments, in exactly this format:
{_recipe_object(servings)}"""


def get_recipe_list_instructions(count: int, servings: int, min_ingredients: int, min_steps: int) -> str:
    """Instructions for a list of varied recipes answering a free-text request."""
    return f"""You are an expert chef. Create exactly {count} varied recipes that match the user's request.
Vary cuisines, techniques and cooking times. Each recipe serves {servings} people, lists at least {min_ingredients} ingredients with quantities, and has at least {min_steps} detailed steps.
Answer ONLY with a valid JSON array of {count} objects, no markdown, in exactly this format:
[{_recipe_object(servings)}]"""


def get_recipe_list_query(query: str, count: int) -> str:
    return f"{query}\nGenerate {count} different recipes."


def get_ingredient_detection_prompt() -> str:
    """Vision-stage instruction: list visible food ingredients as comma-separated text."""
    return f"""Analyze this photo of a fridge or of food ingredients.
List ONLY the food ingredients you can clearly see.
Answer format: a simple comma-separated list. Example: chicken, tomatoes, garlic, cheese, eggs, butter
Do not mention containers, brands, or non-food items.
If you do not see any food, answer exactly: "{NO_INGREDIENTS_MARKER}\""""


def get_vision_recipe_instructions(count: int, servings: int) -> str:
    """Instructions for recipes built from ingredients detected in a photo."""
    used = ',"usedIngredients":["ingredients from the photo used in this recipe"]'
    return f"""You are an expert chef. You are given a list of available ingredients.
Create exactly {count} recipes that can be made with these ingredients (salt, pepper and oil can be assumed available).
For each recipe, report in usedIngredients which of the given ingredients it actually uses.
Answer ONLY with a valid JSON array, no markdown:
[{_recipe_object(servings, used)}]"""


def get_vision_recipe_query(ingredients_text: str, count: int, min_ingredients: int, min_steps: int) -> str:
    return (
        f"Available ingredients: {ingredients_text}\n"
        f"Generate {count} varied, detailed recipes (at least {min_steps} steps and "
        f"at least {min_ingredients} ingredients each)."
    )


def get_nutrition_instructions() -> str:
    return """You are an expert nutritionist. Analyze the nutritional values of a recipe.
Answer ONLY with a valid JSON object, no markdown:
{
  "perPortion": {"calories":0,"proteins":0,"carbs":0,"fats":0,"fiber":0,"sugar":0,"sodium":0},
  "perRecipe": {"calories":0,"proteins":0,"carbs":0,"fats":0,"fiber":0,"sugar":0,"sodium":0},
  "vitamins": [{"name":"Vitamin C","amount":"45mg","daily":"50%"},{"name":"Iron","amount":"2mg","daily":"15%"}],
  "score": 7,
  "scoreLabel": "Good",
  "scoreColor": "green",
  "strengths": ["High in protein","Low in sugar"],
  "improvements": ["Add leafy greens","Reduce salt"],
  "dietCompatibility": {"vegetarian":false,"vegan":false,"glutenFree":true,"dairyFree":false,"keto":false,"lowCarb":false},
  "glycemicIndex": "Medium",
  "tip": "Personalized nutrition tip"
}
The score goes from 1 (very poor) to 10 (excellent). scoreColor: "green" (7-10), "orange" (4-6), "red" (1-3)."""


def get_nutrition_query(title: str, servings: int, ingredients: list[str]) -> str:
    name = f'"{title}"' if title else "Untitled recipe"
    return f"Recipe: {name} for {servings} people.\nIngredients: {', '.join(ingredients)}"


def get_substitution_instructions() -> str:
    return """You are an expert chef specialized in ingredient substitutions.
Answer ONLY with a valid JSON object, no markdown:
{
  "ingredient": "ingredient name",
  "reason": "why one might want to substitute it",
  "substitutes": [
    {
      "name": "Substitute 1",
      "ratio": "same quantity",
      "impact": "Slightly different taste, similar texture",
      "best_for": "sauces and hot dishes",
      "availability": "Easy to find",
      "emoji": "🥛",
      "tags": ["vegan","lactose-free"]
    }
  ],
  "tips": "General advice about substituting this ingredient"
}
Give 3 to 5 varied substitutes, from the closest to the most creative."""


def get_substitution_query(ingredient: str, context: str | None = None, diet: str | None = None) -> str:
    lines = [f'Ingredient to substitute: "{ingredient}"']
    if context:
        lines.append(f"Context: {context}")
    if diet:
        lines.append(f"Diet: {diet}")
    return "\n".join(lines)


def get_meal_plan_instructions() -> str:
    return """You are a nutritionist and chef. Create a 7-day meal plan.
Answer ONLY with a valid JSON object, no markdown:
{
  "weekSummary": {"avgCalories":1800,"totalBudget":"~80€","prepTime":"~30min/day"},
  "days": [
    {
      "day": "Monday",
      "dayEmoji": "🌅",
      "meals": {
        "breakfast": {"name":"Name","emoji":"🥐","duration":10,"calories":350,"description":"Short description"},
        "lunch": {"name":"Name","emoji":"🥗","duration":25,"calories":550,"description":"Short description"},
        "dinner": {"name":"Name","emoji":"🍝","duration":35,"calories":650,"description":"Short description"},
        "snack": {"name":"Name","emoji":"🍎","duration":0,"calories":150,"description":"Short description"}
      },
      "totalCalories": 1700,
      "tip": "Tip of the day"
    }
  ],
  "shoppingHighlights": ["Buy early in the week: ...","Freeze: ..."],
  "nutritionBalance": "Overall assessment of the nutritional balance"
}"""


def get_meal_plan_query(servings: int, diet: str = "", budget: str = "", preferences: str = "") -> str:
    lines = ["Create a balanced 7-day meal plan.", f"People: {servings}"]
    if diet:
        lines.append(f"Diet: {diet}")
    if budget:
        lines.append(f"Budget: {budget}")
    if preferences:
        lines.append(f"Preferences/constraints: {preferences}")
    lines.append("Make sure meals are varied, nutritionally balanced and realistic to prepare.")
    return "\n".join(lines)
