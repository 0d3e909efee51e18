"""Shared fixtures for unit tests.

No test here touches the network: completion calls go through a scripted
fake client and image lookups through a stub chain.
"""

import base64
import json
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from forkai.agents.generation import GenerationPipeline
from forkai.providers.completion import CompletionClient
from forkai.storage.records import InMemoryRecipeStore


def recipe_payload(title="Spaghetti aglio e olio", **overrides) -> dict:
    payload = {
        "title": title,
        "category": "🍝 Pasta",
        "durationMinutes": 20,
        "servings": 2,
        "description": "Garlic, olive oil and chili.",
        "ingredients": ["200 g spaghetti", "3 cloves garlic", "4 tbsp olive oil", "1 chili", "parsley"],
        "steps": ["Boil pasta.", "Slice garlic.", "Warm oil.", "Toss.", "Serve."],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def recipe_json():
    """Factory producing generated text for one recipe or a list of recipes."""

    def _make(count=None, **overrides):
        if count is None:
            return json.dumps(recipe_payload(**overrides))
        return json.dumps([recipe_payload(title=f"Recipe {i}", **overrides) for i in range(count)])

    return _make


@pytest.fixture
def completion_client():
    """CompletionClient whose complete() returns scripted replies in order."""
    client = MagicMock(spec=CompletionClient)
    client.complete = AsyncMock()
    return client


@pytest.fixture
def image_chain():
    chain = MagicMock()
    chain.resolve = AsyncMock(side_effect=lambda title: f"https://images.test/{title.replace(' ', '-')}.jpg")
    return chain


@pytest.fixture
def refresh_chain():
    chain = MagicMock()
    chain.resolve = AsyncMock(return_value="https://images.test/fresh.jpg")
    return chain


@pytest.fixture
def store():
    return InMemoryRecipeStore()


@pytest.fixture
def pipeline(completion_client, image_chain, refresh_chain, store):
    return GenerationPipeline(
        client=completion_client, image_chain=image_chain, refresh_chain=refresh_chain, store=store
    )


@pytest.fixture
def photo_base64():
    output = BytesIO()
    Image.new("RGB", (16, 16), "white").save(output, format="JPEG")
    return base64.b64encode(output.getvalue()).decode()
