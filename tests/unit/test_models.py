"""Unit tests for request, transport and response models."""

import pytest
from pydantic import ValidationError

from forkai.models.models import (
    ChatRequest,
    CompletionRequest,
    ImageRefreshRequest,
    ImageRefreshResponse,
    MealPlanRequest,
    NutritionRequest,
    ProviderKind,
    RecipeListResponse,
    RecipeRequest,
    Role,
    SubstitutionRequest,
    Turn,
    VisionAnalysisResponse,
    VisionRequest,
)
from forkai.models.schemas import RecipeDraft


class TestRecipeRequest:
    def test_servings_defaults_to_config(self):
        assert RecipeRequest(query="pasta").servings == 4

    def test_query_is_stripped(self):
        assert RecipeRequest(query="  pasta  ").query == "pasta"

    @pytest.mark.parametrize("payload", [{}, {"query": ""}, {"query": "   "}, {"query": "pasta", "servings": 0}])
    def test_invalid_requests(self, payload):
        with pytest.raises(ValidationError):
            RecipeRequest.model_validate(payload)


class TestVisionRequest:
    def test_accepts_camel_case_mime_type(self):
        request = VisionRequest.model_validate({"image": "abc", "mimeType": "image/png", "servings": 2})
        assert request.mime_type == "image/png"
        assert request.servings == 2

    def test_image_required(self):
        with pytest.raises(ValidationError):
            VisionRequest.model_validate({"mimeType": "image/png"})


class TestNutritionRequest:
    def test_blank_ingredients_dropped(self):
        request = NutritionRequest(ingredients=["200 g rice", " ", "1 onion"])
        assert request.ingredients == ["200 g rice", "1 onion"]

    def test_all_blank_ingredients_rejected(self):
        with pytest.raises(ValidationError):
            NutritionRequest(ingredients=["", "  "])

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            NutritionRequest(ingredients=[])


class TestOtherRequests:
    def test_substitution_requires_ingredient(self):
        with pytest.raises(ValidationError):
            SubstitutionRequest.model_validate({"diet": "vegan"})

    def test_meal_plan_defaults(self):
        request = MealPlanRequest()
        assert request.servings == 2
        assert request.diet == ""

    def test_chat_request_aliases(self):
        request = ChatRequest.model_validate(
            {"systemPrompt": "Be brief.", "messages": [{"content": "Hi", "isUser": True}, {"content": "Hello!", "isUser": False}]}
        )
        assert request.system_prompt == "Be brief."
        assert [message.is_user for message in request.messages] == [True, False]

    def test_chat_request_needs_messages(self):
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({"messages": []})

    def test_image_refresh_aliases(self):
        request = ImageRefreshRequest.model_validate({"userId": "u1", "recipeId": "r1"})
        assert (request.user_id, request.recipe_id) == ("u1", "r1")


class TestCompletionRequest:
    def test_is_immutable(self):
        request = CompletionRequest(
            provider_kind=ProviderKind.TEXT,
            turns=(Turn(role=Role.USER, text="hi"),),
            max_output_tokens=100,
            temperature=0.5,
        )
        with pytest.raises(ValidationError):
            request.temperature = 0.9

    def test_rejects_temperature_out_of_range(self):
        with pytest.raises(ValidationError):
            CompletionRequest(provider_kind=ProviderKind.TEXT, turns=(), max_output_tokens=100, temperature=1.5)

    def test_turn_from_chat(self):
        assert Turn.from_chat("Hi", True).role is Role.USER
        assert Turn.from_chat("Hello", False).role is Role.ASSISTANT


class TestResponses:
    def test_recipe_list_payload_uses_camel_case(self):
        payload = RecipeListResponse(recipes=[RecipeDraft.model_validate({"title": "Soup"})]).to_payload()
        recipe = payload["recipes"][0]
        assert recipe["title"] == "Soup"
        assert recipe["durationMinutes"] == 30
        assert recipe["imageUrl"] is None

    def test_vision_empty_result_payload(self):
        payload = VisionAnalysisResponse(message="No ingredients detected.").to_payload()
        assert payload == {"ingredients": [], "recipes": [], "message": "No ingredients detected."}

    def test_image_refresh_payload(self):
        assert ImageRefreshResponse(image_url="https://x/y.jpg").to_payload() == {"imageUrl": "https://x/y.jpg"}
