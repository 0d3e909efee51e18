"""Configuration management for the ForkAI content pipeline.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()

KNOWN_IMAGE_PROVIDERS = ("unsplash", "pexels", "redirect")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip().lower() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Text completion provider (OpenAI-compatible chat endpoint, Groq by default)
        self.GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
        self.TEXT_COMPLETION_URL: str = os.getenv(
            "TEXT_COMPLETION_URL", "https://api.groq.com/openai/v1/chat/completions"
        )
        self.TEXT_MODEL: str = os.getenv("TEXT_MODEL", "llama-3.3-70b-versatile")
        # Vision completion provider (Gemini)
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        self.IMAGE_DETECTION_MODEL: str = os.getenv("IMAGE_DETECTION_MODEL", "gemini-1.5-flash")

        # Image search credentials. A provider without a key is skipped by the chain.
        self.UNSPLASH_ACCESS_KEY: str = os.getenv("UNSPLASH_ACCESS_KEY", "")
        self.PEXELS_API_KEY: str = os.getenv("PEXELS_API_KEY", "")
        # Unauthenticated redirect fallback: opt-in, {query} is replaced by comma-separated keywords
        self.USE_IMAGE_REDIRECT_FALLBACK: bool = _env_bool("USE_IMAGE_REDIRECT_FALLBACK", "false")
        self.IMAGE_REDIRECT_URL: str = os.getenv("IMAGE_REDIRECT_URL", "https://loremflickr.com/800/600/{query}")
        # Provider order for fresh generations and for "refresh image" requests
        self.IMAGE_PROVIDER_ORDER: list[str] = _env_list("IMAGE_PROVIDER_ORDER", "unsplash,pexels,redirect")
        self.IMAGE_REFRESH_PROVIDER_ORDER: list[str] = _env_list(
            "IMAGE_REFRESH_PROVIDER_ORDER", "pexels,unsplash,redirect"
        )
        # Per-provider timeout in seconds
        self.IMAGE_SEARCH_TIMEOUT: float = float(os.getenv("IMAGE_SEARCH_TIMEOUT", "5"))
        # Appended to every image search query
        self.IMAGE_QUERY_SUFFIX: str = os.getenv("IMAGE_QUERY_SUFFIX", "food dish")
        # Number of simultaneous image lookups during batch enrichment
        self.IMAGE_BATCH_SIZE: int = int(os.getenv("IMAGE_BATCH_SIZE", "5"))

        # Generation defaults
        self.DEFAULT_SERVINGS: int = int(os.getenv("DEFAULT_SERVINGS", "4"))
        self.RECIPE_LIST_SIZE: int = int(os.getenv("RECIPE_LIST_SIZE", "10"))
        self.VISION_RECIPE_COUNT: int = int(os.getenv("VISION_RECIPE_COUNT", "5"))
        self.MIN_RECIPE_INGREDIENTS: int = int(os.getenv("MIN_RECIPE_INGREDIENTS", "5"))
        self.MIN_RECIPE_STEPS: int = int(os.getenv("MIN_RECIPE_STEPS", "5"))

        # Uploaded photo handling
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        self.COMPRESS_IMG: bool = _env_bool("COMPRESS_IMG", "true")
        # Only images larger than this (in KB) are re-encoded before the vision call
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))

        # Completion timeouts in milliseconds, one per task
        self.RECIPE_TIMEOUT_MS: int = int(os.getenv("RECIPE_TIMEOUT_MS", "30000"))
        self.RECIPE_LIST_TIMEOUT_MS: int = int(os.getenv("RECIPE_LIST_TIMEOUT_MS", "35000"))
        self.VISION_TIMEOUT_MS: int = int(os.getenv("VISION_TIMEOUT_MS", "20000"))
        self.NUTRITION_TIMEOUT_MS: int = int(os.getenv("NUTRITION_TIMEOUT_MS", "25000"))
        self.SUBSTITUTION_TIMEOUT_MS: int = int(os.getenv("SUBSTITUTION_TIMEOUT_MS", "25000"))
        self.MEAL_PLAN_TIMEOUT_MS: int = int(os.getenv("MEAL_PLAN_TIMEOUT_MS", "45000"))
        self.CHAT_TIMEOUT_MS: int = int(os.getenv("CHAT_TIMEOUT_MS", "30000"))

    def validate(self) -> None:
        """Validate configuration values.

        API keys are not required here: each provider checks its own credential
        when it is first used, so the package can be imported without secrets.

        Raises:
            ValueError: If a value is out of range or a provider name is unknown.
        """
        if not (4 <= self.IMAGE_SEARCH_TIMEOUT <= 6):
            raise ValueError(
                f"IMAGE_SEARCH_TIMEOUT must be between 4 and 6 seconds, got: {self.IMAGE_SEARCH_TIMEOUT}"
            )
        if self.IMAGE_BATCH_SIZE < 1:
            raise ValueError(f"IMAGE_BATCH_SIZE must be at least 1, got: {self.IMAGE_BATCH_SIZE}")
        for setting in ("IMAGE_PROVIDER_ORDER", "IMAGE_REFRESH_PROVIDER_ORDER"):
            unknown = [name for name in getattr(self, setting) if name not in KNOWN_IMAGE_PROVIDERS]
            if unknown:
                raise ValueError(
                    f"{setting} contains unknown providers {unknown}, expected any of {KNOWN_IMAGE_PROVIDERS}"
                )
        if "{query}" not in self.IMAGE_REDIRECT_URL:
            raise ValueError(f"IMAGE_REDIRECT_URL must contain a {{query}} placeholder, got: {self.IMAGE_REDIRECT_URL}")
        for setting in ("DEFAULT_SERVINGS", "RECIPE_LIST_SIZE", "VISION_RECIPE_COUNT"):
            if getattr(self, setting) < 1:
                raise ValueError(f"{setting} must be at least 1, got: {getattr(self, setting)}")
        for setting in ("MIN_RECIPE_INGREDIENTS", "MIN_RECIPE_STEPS"):
            if getattr(self, setting) < 1:
                raise ValueError(f"{setting} must be at least 1, got: {getattr(self, setting)}")
        if self.MAX_IMAGE_SIZE_MB < 1:
            raise ValueError(f"MAX_IMAGE_SIZE_MB must be at least 1, got: {self.MAX_IMAGE_SIZE_MB}")
        for setting in (
            "RECIPE_TIMEOUT_MS",
            "RECIPE_LIST_TIMEOUT_MS",
            "VISION_TIMEOUT_MS",
            "NUTRITION_TIMEOUT_MS",
            "SUBSTITUTION_TIMEOUT_MS",
            "MEAL_PLAN_TIMEOUT_MS",
            "CHAT_TIMEOUT_MS",
        ):
            if getattr(self, setting) <= 0:
                raise ValueError(f"{setting} must be positive, got: {getattr(self, setting)}")


# Create module-level config instance and validate immediately
config = Config()
config.validate()
