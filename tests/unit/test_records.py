"""Unit tests for the in-memory recipe store."""

import pytest

from forkai.models.schemas import RecipeDraft
from forkai.storage.records import InMemoryRecipeStore
from forkai.utils.errors import RecordNotFoundError


def draft(title="Soup"):
    return RecipeDraft.model_validate({"title": title, "imageUrl": "https://old.jpg"})


class TestInMemoryRecipeStore:
    @pytest.mark.asyncio
    async def test_insert_and_get(self):
        store = InMemoryRecipeStore()
        record = await store.insert_recipe("user-1", draft(), is_ai_generated=True)

        fetched = await store.get_recipe("user-1", record.id)
        assert fetched.title == "Soup"
        assert fetched.image_url == "https://old.jpg"
        assert fetched.is_ai_generated is True

    @pytest.mark.asyncio
    async def test_records_are_scoped_to_user(self):
        store = InMemoryRecipeStore()
        record = await store.insert_recipe("user-1", draft())
        with pytest.raises(RecordNotFoundError):
            await store.get_recipe("user-2", record.id)

    @pytest.mark.asyncio
    async def test_update_image_url(self):
        store = InMemoryRecipeStore()
        record = await store.insert_recipe("user-1", draft())

        updated = await store.update_image_url("user-1", record.id, "https://new.jpg")

        assert updated.image_url == "https://new.jpg"
        assert updated.recipe.image_url == "https://new.jpg"
        assert (await store.get_recipe("user-1", record.id)).image_url == "https://new.jpg"

    @pytest.mark.asyncio
    async def test_update_missing_record(self):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await InMemoryRecipeStore().update_image_url("user-1", "nope", "https://new.jpg")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_count_ai_generated(self):
        store = InMemoryRecipeStore()
        await store.insert_recipe("user-1", draft("A"), is_ai_generated=True)
        await store.insert_recipe("user-1", draft("B"), is_ai_generated=False)
        await store.insert_recipe("user-1", draft("C"), is_ai_generated=True)
        await store.insert_recipe("user-2", draft("D"), is_ai_generated=True)

        assert await store.count_ai_generated("user-1") == 2
        assert await store.count_ai_generated("user-3") == 0
