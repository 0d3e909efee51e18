"""Generation orchestrators.

Every task runs through the same parameterized pipeline:

    Building -> AwaitingCompletion -> Parsing -> (Chaining ->) Enriching -> Done

with Failed(reason) reachable from any stage. A TaskOptions value carries
what differs between tasks (token budget, temperature, timeout, expected
shape and schema). There are no retries: a completion or parse failure aborts
the request with its classified error. Image lookups never fail a request.

handle_request(task, payload) is the entry point for the web layer: it
validates the payload, runs the task and returns (status, JSON body).
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from forkai.agents.enrichment import enrich_all
from forkai.models.models import (
    ChatRequest,
    ChatResponse,
    CompletionRequest,
    ImageRefreshRequest,
    ImageRefreshResponse,
    InlineMedia,
    MealPlanRequest,
    MealPlanResponse,
    NutritionRequest,
    NutritionResponse,
    ProviderKind,
    RecipeListResponse,
    RecipeRequest,
    RecipeResponse,
    Role,
    SubstitutionRequest,
    SubstitutionResponse,
    Turn,
    VisionAnalysisResponse,
    VisionRequest,
)
from forkai.models.schemas import MealPlan, NutritionReport, RecipeDraft, SubstitutionResult, VisionRecipe
from forkai.parsing.coercion import LenientModel
from forkai.parsing.structured import Shape, parse
from forkai.prompts.prompts import (
    DEFAULT_CHAT_INSTRUCTIONS,
    NO_INGREDIENTS_MARKER,
    get_ingredient_detection_prompt,
    get_meal_plan_instructions,
    get_meal_plan_query,
    get_nutrition_instructions,
    get_nutrition_query,
    get_recipe_instructions,
    get_recipe_list_instructions,
    get_recipe_list_query,
    get_substitution_instructions,
    get_substitution_query,
    get_vision_recipe_instructions,
    get_vision_recipe_query,
)
from forkai.providers.completion import CompletionClient
from forkai.providers.image_input import prepare_image
from forkai.providers.image_search import ImageResolutionChain, build_chain, build_refresh_chain
from forkai.storage.records import InMemoryRecipeStore, RecipeStore, StoredRecipe
from forkai.utils.config import config
from forkai.utils.errors import GenerationError, InvalidRequestError
from forkai.utils.logger import logger


class PipelineStage(str, Enum):
    BUILDING = "building"
    AWAITING_COMPLETION = "awaiting_completion"
    PARSING = "parsing"
    CHAINING = "chaining"
    ENRICHING = "enriching"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskOptions:
    """What differs between two generation tasks."""

    name: str
    max_tokens: int
    temperature: float
    timeout_ms: int
    shape: Optional[Shape] = None
    schema: Optional[type[LenientModel]] = None
    provider_kind: ProviderKind = ProviderKind.TEXT
    model: Optional[str] = None


def task_options(task: str) -> TaskOptions:
    """Options for a task, read from configuration at call time."""
    options = {
        "recipe": TaskOptions("recipe", 2048, 0.8, config.RECIPE_TIMEOUT_MS, Shape.OBJECT, RecipeDraft),
        "recipe_list": TaskOptions("recipe_list", 6000, 0.8, config.RECIPE_LIST_TIMEOUT_MS, Shape.ARRAY, RecipeDraft),
        "vision_ingredients": TaskOptions(
            "vision_ingredients", 200, 0.1, config.VISION_TIMEOUT_MS, provider_kind=ProviderKind.VISION
        ),
        "vision_recipes": TaskOptions(
            "vision_recipes", 6000, 0.8, config.RECIPE_LIST_TIMEOUT_MS, Shape.ARRAY, VisionRecipe
        ),
        "nutrition": TaskOptions("nutrition", 1500, 0.2, config.NUTRITION_TIMEOUT_MS, Shape.OBJECT, NutritionReport),
        "substitution": TaskOptions(
            "substitution", 1500, 0.5, config.SUBSTITUTION_TIMEOUT_MS, Shape.OBJECT, SubstitutionResult
        ),
        "meal_plan": TaskOptions("meal_plan", 6000, 0.7, config.MEAL_PLAN_TIMEOUT_MS, Shape.OBJECT, MealPlan),
        "chat": TaskOptions("chat", 2048, 0.8, config.CHAT_TIMEOUT_MS),
    }
    return options[task]


class PipelineRun:
    """Stage tracker for one request. Every transition is logged at debug level."""

    def __init__(self, task: str) -> None:
        self.task = task
        self.stage = PipelineStage.BUILDING
        self.reason: Optional[str] = None
        self.started = time.monotonic()
        self._log(f"Started in {self.stage.value}")

    def advance(self, stage: PipelineStage) -> None:
        previous, self.stage = self.stage, stage
        self._log(f"{previous.value} → {stage.value}")

    def fail(self, reason: str) -> None:
        previous, self.stage, self.reason = self.stage, PipelineStage.FAILED, reason
        self._log(f"{previous.value} → failed: {reason}")

    def _log(self, message: str) -> None:
        elapsed_ms = round((time.monotonic() - self.started) * 1000)
        logger.debug(message, extra={"task": self.task, "stage": self.stage.value, "elapsed_ms": elapsed_ms})


def generation_timestamp() -> int:
    """Milliseconds since the epoch, captured once per response."""
    return int(time.time() * 1000)


def split_ingredients(text: str) -> list[str]:
    """Split a comma-separated ingredient list, dropping blanks and duplicates."""
    items = (item.strip().strip(".").strip() for item in text.split(","))
    return list(dict.fromkeys(item for item in items if item))


class GenerationPipeline:
    """Runs generation tasks against one completion client and image chain.

    Args:
        client: Completion client (defaults to the configured providers).
        image_chain: Chain for fresh generations (IMAGE_PROVIDER_ORDER).
        refresh_chain: Chain for image refresh requests (IMAGE_REFRESH_PROVIDER_ORDER).
        store: Persistence collaborator for refresh and save.
    """

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        image_chain: Optional[ImageResolutionChain] = None,
        refresh_chain: Optional[ImageResolutionChain] = None,
        store: Optional[RecipeStore] = None,
    ) -> None:
        self.client = client or CompletionClient()
        self.image_chain = image_chain or build_chain()
        self.refresh_chain = refresh_chain or build_refresh_chain()
        self.store = store if store is not None else InMemoryRecipeStore()

    async def _run(
        self,
        options: TaskOptions,
        system_instruction: str,
        turns: list[Turn],
        context: Optional[dict] = None,
        run: Optional[PipelineRun] = None,
    ):
        """Completion call followed by parsing (when the task has a schema)."""
        run = run or PipelineRun(options.name)
        request = CompletionRequest(
            provider_kind=options.provider_kind,
            system_instruction=system_instruction,
            turns=tuple(turns),
            max_output_tokens=options.max_tokens,
            temperature=options.temperature,
            model=options.model,
        )

        run.advance(PipelineStage.AWAITING_COMPLETION)
        raw_text = await self.client.complete(request, options.timeout_ms)
        if options.schema is None:
            return raw_text

        run.advance(PipelineStage.PARSING)
        return parse(raw_text, options.shape, options.schema, context=context)

    async def _tracked(self, task: str, body: Callable[[PipelineRun], Awaitable[Any]]):
        run = PipelineRun(task)
        try:
            result = await body(run)
        except GenerationError as e:
            run.fail(e.message)
            raise
        run.advance(PipelineStage.DONE)
        return result

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    async def generate_recipe(self, request: RecipeRequest) -> RecipeResponse:
        """One recipe for a free-text query, with one image."""

        async def body(run: PipelineRun) -> RecipeResponse:
            instructions = get_recipe_instructions(
                request.servings, config.MIN_RECIPE_INGREDIENTS, config.MIN_RECIPE_STEPS
            )
            recipe = await self._run(
                task_options("recipe"),
                instructions,
                [Turn(role=Role.USER, text=request.query)],
                context={"servings": request.servings},
                run=run,
            )
            recipe.id = f"gen_{generation_timestamp()}"

            run.advance(PipelineStage.ENRICHING)
            recipe.image_url = await self.image_chain.resolve(recipe.title)
            return RecipeResponse(recipe=recipe)

        return await self._tracked("recipe", body)

    async def generate_recipe_list(self, request: RecipeRequest) -> RecipeListResponse:
        """RECIPE_LIST_SIZE varied recipes for a free-text query, batch-enriched."""

        async def body(run: PipelineRun) -> RecipeListResponse:
            count = config.RECIPE_LIST_SIZE
            instructions = get_recipe_list_instructions(
                count, request.servings, config.MIN_RECIPE_INGREDIENTS, config.MIN_RECIPE_STEPS
            )
            recipes = await self._run(
                task_options("recipe_list"),
                instructions,
                [Turn(role=Role.USER, text=get_recipe_list_query(request.query, count))],
                context={"servings": request.servings},
                run=run,
            )
            recipes = self._finalize_batch(recipes[:count], "gen")

            run.advance(PipelineStage.ENRICHING)
            await enrich_all(recipes, lambda recipe: recipe.title, self.image_chain.resolve)
            return RecipeListResponse(recipes=recipes)

        return await self._tracked("recipe_list", body)

    @staticmethod
    def _finalize_batch(recipes: list[RecipeDraft], prefix: str) -> list[RecipeDraft]:
        """Assign ids from one timestamp plus the element index and clear images."""
        stamp = generation_timestamp()
        for index, recipe in enumerate(recipes):
            recipe.id = f"{prefix}_{stamp}_{index}"
            recipe.image_url = None
        return recipes

    async def analyze_photo(self, request: VisionRequest) -> VisionAnalysisResponse:
        """Detect ingredients in a photo, then generate recipes that use them."""

        async def body(run: PipelineRun) -> VisionAnalysisResponse:
            media: InlineMedia = prepare_image(request.image, request.mime_type)
            ingredients_text = await self._run(
                task_options("vision_ingredients"),
                "",
                [Turn(role=Role.USER, text=get_ingredient_detection_prompt(), media=media)],
                run=run,
            )
            logger.info(f"Detected ingredients: {ingredients_text.strip()[:200]}")

            ingredients = split_ingredients(ingredients_text)
            if NO_INGREDIENTS_MARKER.lower() in ingredients_text.lower() or not ingredients:
                return VisionAnalysisResponse(message="No ingredients detected.")

            run.advance(PipelineStage.CHAINING)
            count = config.VISION_RECIPE_COUNT
            query = get_vision_recipe_query(
                ", ".join(ingredients), count, config.MIN_RECIPE_INGREDIENTS, config.MIN_RECIPE_STEPS
            )
            recipes = await self._run(
                task_options("vision_recipes"),
                get_vision_recipe_instructions(count, request.servings),
                [Turn(role=Role.USER, text=query)],
                context={"servings": request.servings},
                run=run,
            )
            recipes = self._finalize_batch(recipes[:count], "vision")

            run.advance(PipelineStage.ENRICHING)
            await enrich_all(recipes, lambda recipe: recipe.title, self.image_chain.resolve)
            return VisionAnalysisResponse(
                ingredients=ingredients,
                recipes=recipes,
                message=f"✅ {len(ingredients)} ingredients detected, {len(recipes)} recipes generated",
            )

        return await self._tracked("vision", body)

    # ------------------------------------------------------------------
    # Single-object analyses
    # ------------------------------------------------------------------

    async def analyze_nutrition(self, request: NutritionRequest) -> NutritionResponse:
        async def body(run: PipelineRun) -> NutritionResponse:
            report = await self._run(
                task_options("nutrition"),
                get_nutrition_instructions(),
                [Turn(role=Role.USER, text=get_nutrition_query(request.title, request.servings, request.ingredients))],
                run=run,
            )
            return NutritionResponse(nutrition=report)

        return await self._tracked("nutrition", body)

    async def suggest_substitutes(self, request: SubstitutionRequest) -> SubstitutionResponse:
        async def body(run: PipelineRun) -> SubstitutionResponse:
            result = await self._run(
                task_options("substitution"),
                get_substitution_instructions(),
                [Turn(role=Role.USER, text=get_substitution_query(request.ingredient, request.context, request.diet))],
                context={"ingredient": request.ingredient},
                run=run,
            )
            return SubstitutionResponse(result=result)

        return await self._tracked("substitution", body)

    async def plan_meals(self, request: MealPlanRequest) -> MealPlanResponse:
        async def body(run: PipelineRun) -> MealPlanResponse:
            plan = await self._run(
                task_options("meal_plan"),
                get_meal_plan_instructions(),
                [
                    Turn(
                        role=Role.USER,
                        text=get_meal_plan_query(request.servings, request.diet, request.budget, request.preferences),
                    )
                ],
                run=run,
            )
            return MealPlanResponse(plan=plan)

        return await self._tracked("meal_plan", body)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Free-form assistant reply; the text is returned as-is."""

        async def body(run: PipelineRun) -> ChatResponse:
            turns = [Turn.from_chat(message.content, message.is_user) for message in request.messages]
            reply = await self._run(
                task_options("chat"),
                request.system_prompt or DEFAULT_CHAT_INSTRUCTIONS,
                turns,
                run=run,
            )
            return ChatResponse(reply=reply)

        return await self._tracked("chat", body)

    # ------------------------------------------------------------------
    # Stored recipes
    # ------------------------------------------------------------------

    async def refresh_image(self, request: ImageRefreshRequest) -> ImageRefreshResponse:
        """Look up a new image for a saved recipe and write it back."""

        async def body(run: PipelineRun) -> ImageRefreshResponse:
            record = await self.store.get_recipe(request.user_id, request.recipe_id)
            run.advance(PipelineStage.ENRICHING)
            image_url = await self.refresh_chain.resolve(record.title)
            if image_url is None:
                # Keep the current image rather than erasing it
                logger.info(f"No new image found for recipe {record.id}, keeping the current one")
                return ImageRefreshResponse(image_url=record.image_url)
            updated = await self.store.update_image_url(request.user_id, request.recipe_id, image_url)
            return ImageRefreshResponse(image_url=updated.image_url)

        return await self._tracked("image_refresh", body)

    async def save_generated_recipe(self, user_id: str, recipe: RecipeDraft) -> StoredRecipe:
        """Persist a generated recipe flagged as AI-generated."""
        if not recipe.title:
            raise InvalidRequestError("Recipe title is required")
        record = await self.store.insert_recipe(user_id, recipe, is_ai_generated=True)
        total = await self.store.count_ai_generated(user_id)
        logger.info(f"Saved AI-generated recipe {record.id} for user {user_id} ({total} total)")
        return record

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle_request(self, task: str, payload: Any) -> tuple[int, dict]:
        """Validate payload for task, run it and return (status, JSON body).

        Caller input errors give 400, pipeline failures the status of their
        GenerationError class, and success 200 with the task's response shape.
        """
        route = self.routes.get(task)
        if route is None:
            return 404, {"error": f"Unknown task: {task}"}
        request_model, handler_name = route

        try:
            request = request_model.model_validate(payload if payload is not None else {})
            response = await getattr(self, handler_name)(request)
        except ValidationError as e:
            logger.warning(f"Invalid {task} request: {e.error_count()} error(s)")
            return 400, {"error": _validation_message(e)}
        except GenerationError as e:
            logger.error(f"{task} failed: {e.message}")
            return e.status_code, {"error": e.message}
        return 200, response.to_payload()

    routes: dict[str, tuple[type[BaseModel], str]] = {
        "recipe": (RecipeRequest, "generate_recipe"),
        "recipe_list": (RecipeRequest, "generate_recipe_list"),
        "vision": (VisionRequest, "analyze_photo"),
        "nutrition": (NutritionRequest, "analyze_nutrition"),
        "substitution": (SubstitutionRequest, "suggest_substitutes"),
        "meal_plan": (MealPlanRequest, "plan_meals"),
        "chat": (ChatRequest, "chat"),
        "image_refresh": (ImageRefreshRequest, "refresh_image"),
    }


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "request"
    return f"{location}: {first.get('msg', 'invalid value')}"


async def handle_request(task: str, payload: Any, store: Optional[RecipeStore] = None) -> tuple[int, dict]:
    """Run one task with the configured providers.

    Without a store each call gets a fresh in-memory one, so image_refresh
    only finds records when the caller passes the store that holds them.
    """
    return await GenerationPipeline(store=store).handle_request(task, payload)
