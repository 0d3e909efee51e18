"""Data models for the content pipeline.

Defines Pydantic models for:
- Completion transport (CompletionRequest and its turns), immutable once built
- Caller requests for each generation task, validated strictly (bad input is a 4xx)
- Response envelopes returned to the web layer

Entities parsed out of generated text live in forkai.models.schemas.
"""

from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forkai.models.schemas import MealPlan, NutritionReport, RecipeDraft, SubstitutionResult, VisionRecipe
from forkai.utils.config import config


# ============================================================================
# Completion transport
# ============================================================================


class ProviderKind(str, Enum):
    TEXT = "text"
    VISION = "vision"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class InlineMedia(BaseModel):
    """Binary attachment sent inline with a vision turn."""

    model_config = ConfigDict(frozen=True)

    mime_type: str
    data: bytes


class Turn(BaseModel):
    """One conversation turn: text, plus inline media for vision requests."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str
    media: Optional[InlineMedia] = None

    @classmethod
    def from_chat(cls, content: str, is_user: bool) -> "Turn":
        """Map the application's "is this the end user" flag to a role."""
        return cls(role=Role.USER if is_user else Role.ASSISTANT, text=content)


class CompletionRequest(BaseModel):
    """Everything a completion provider needs for one call."""

    model_config = ConfigDict(frozen=True)

    provider_kind: ProviderKind
    system_instruction: str = ""
    turns: tuple[Turn, ...]
    max_output_tokens: Annotated[int, Field(gt=0, le=65536)]
    temperature: Annotated[float, Field(ge=0.0, le=1.0)]
    model: Optional[str] = None


# ============================================================================
# Caller requests
# ============================================================================


def _default_servings() -> int:
    return config.DEFAULT_SERVINGS


class RecipeRequest(BaseModel):
    """Free-text request for one recipe or a list of recipes."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    query: Annotated[str, Field(min_length=1, max_length=2000, description="What the user wants to cook")]
    servings: Annotated[int, Field(default_factory=_default_servings, ge=1, le=100)]


class VisionRequest(BaseModel):
    """Photo of a fridge or ingredients, as raw base64 or a data: URL."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    image: Annotated[str, Field(min_length=1, description="Base64-encoded image or data: URL")]
    mime_type: Annotated[Optional[str], Field(alias="mimeType")] = None
    servings: Annotated[int, Field(default_factory=_default_servings, ge=1, le=100)]


class NutritionRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Annotated[str, Field(max_length=200)] = ""
    ingredients: Annotated[List[str], Field(min_length=1, max_length=100)]
    servings: Annotated[int, Field(default_factory=_default_servings, ge=1, le=100)]

    @field_validator("ingredients")
    @classmethod
    def drop_blank_ingredients(cls, ingredients: list[str]) -> list[str]:
        cleaned = [item for item in ingredients if item]
        if not cleaned:
            raise ValueError("At least one ingredient is required")
        return cleaned


class SubstitutionRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ingredient: Annotated[str, Field(min_length=1, max_length=200)]
    context: Annotated[Optional[str], Field(max_length=1000)] = None
    diet: Annotated[Optional[str], Field(max_length=200)] = None


class MealPlanRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    preferences: Annotated[str, Field(max_length=1000)] = ""
    servings: Annotated[int, Field(ge=1, le=100)] = 2
    budget: Annotated[str, Field(max_length=200)] = ""
    diet: Annotated[str, Field(max_length=200)] = ""


class ChatTurn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Annotated[str, Field(min_length=1)]
    is_user: Annotated[bool, Field(alias="isUser")] = True


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    system_prompt: Annotated[Optional[str], Field(alias="systemPrompt")] = None
    messages: Annotated[List[ChatTurn], Field(min_length=1)]


class ImageRefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Annotated[str, Field(min_length=1, alias="userId")]
    recipe_id: Annotated[str, Field(min_length=1, alias="recipeId")]


# ============================================================================
# Responses
# ============================================================================


class ResponseModel(BaseModel):
    """Response envelope. Serialize with to_payload() to get the camelCase JSON shape."""

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RecipeResponse(ResponseModel):
    recipe: RecipeDraft


class RecipeListResponse(ResponseModel):
    recipes: List[RecipeDraft]


class VisionAnalysisResponse(ResponseModel):
    ingredients: List[str] = Field(default_factory=list)
    recipes: List[VisionRecipe] = Field(default_factory=list)
    message: str


class NutritionResponse(ResponseModel):
    nutrition: NutritionReport


class SubstitutionResponse(ResponseModel):
    result: SubstitutionResult


class MealPlanResponse(ResponseModel):
    plan: MealPlan


class ChatResponse(ResponseModel):
    reply: str


class ImageRefreshResponse(ResponseModel):
    image_url: Annotated[Optional[str], Field(alias="imageUrl")] = None
