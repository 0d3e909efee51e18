"""Pytest configuration and fixtures for integration tests.

These tests call the real completion and image providers. They load .env
from the project root and skip when the required API keys are missing.

Run with: pytest tests/integration
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env before test collection so forkai.utils.config sees the keys."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    print("\n" + "=" * 70)
    print("Note: These tests require valid GROQ_API_KEY (and GEMINI_API_KEY for vision)")
    print(f"Environment loaded from: {env_path}")
    providers = [name for name, key in (("unsplash", "UNSPLASH_ACCESS_KEY"), ("pexels", "PEXELS_API_KEY")) if os.getenv(key)]
    print(f"Image providers: {', '.join(providers) or 'none configured'}")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip the whole session when the text provider key is missing."""
    if not os.getenv("GROQ_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API keys: GROQ_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture
def require_vision_key():
    if not os.getenv("GEMINI_API_KEY"):
        pytest.skip("GEMINI_API_KEY not configured")


@pytest.fixture
def require_image_key():
    if not (os.getenv("UNSPLASH_ACCESS_KEY") or os.getenv("PEXELS_API_KEY")):
        pytest.skip("No image search provider configured")
