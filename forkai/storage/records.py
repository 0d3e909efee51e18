"""Persistence collaborator used by the pipeline.

The pipeline only needs a narrow slice of the recipe store: read one record,
write its image_url, insert a generated recipe flagged as AI-generated, and
count a user's AI-generated recipes. RecipeStore describes that slice; the
real implementation lives in the web layer. InMemoryRecipeStore backs the CLI
and the tests.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from forkai.models.schemas import RecipeDraft
from forkai.utils.errors import RecordNotFoundError


class StoredRecipe(BaseModel):
    """A recipe row as the persistence layer returns it."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    title: str
    image_url: Optional[str] = None
    is_ai_generated: bool = False
    recipe: RecipeDraft
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RecipeStore(Protocol):
    async def get_recipe(self, user_id: str, recipe_id: str) -> StoredRecipe: ...

    async def update_image_url(self, user_id: str, recipe_id: str, image_url: Optional[str]) -> StoredRecipe: ...

    async def insert_recipe(self, user_id: str, recipe: RecipeDraft, is_ai_generated: bool = False) -> StoredRecipe: ...

    async def count_ai_generated(self, user_id: str) -> int: ...


class InMemoryRecipeStore:
    """Dict-backed RecipeStore keyed by (user_id, recipe_id)."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], StoredRecipe] = {}

    async def get_recipe(self, user_id: str, recipe_id: str) -> StoredRecipe:
        try:
            return self._records[(user_id, recipe_id)]
        except KeyError:
            raise RecordNotFoundError(f"Recipe {recipe_id} not found") from None

    async def update_image_url(self, user_id: str, recipe_id: str, image_url: Optional[str]) -> StoredRecipe:
        record = await self.get_recipe(user_id, recipe_id)
        updated = record.model_copy(
            update={"image_url": image_url, "recipe": record.recipe.model_copy(update={"image_url": image_url})}
        )
        self._records[(user_id, recipe_id)] = updated
        return updated

    async def insert_recipe(self, user_id: str, recipe: RecipeDraft, is_ai_generated: bool = False) -> StoredRecipe:
        record = StoredRecipe(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=recipe.title,
            image_url=recipe.image_url,
            is_ai_generated=is_ai_generated,
            recipe=recipe,
        )
        self._records[(user_id, record.id)] = record
        return record

    async def count_ai_generated(self, user_id: str) -> int:
        return sum(1 for (owner, _), record in self._records.items() if owner == user_id and record.is_ai_generated)
