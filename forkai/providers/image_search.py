"""Image resolution chain: find an illustrative photo for a recipe title.

Providers share one interface, search(query) -> url | None, and are tried in
the order given by configuration (IMAGE_PROVIDER_ORDER):

- unsplash: top 3 results, the second one is preferred (the first is often a
  generic stock shot), else the first
- pexels: single top result
- redirect: unauthenticated fallback, opt-in via USE_IMAGE_REDIRECT_FALLBACK

Every attempt has its own timeout. Timeouts, HTTP failures and empty result
sets are logged and swallowed: a missing image is a normal outcome.
"""

import asyncio
import re
from typing import Optional, Sequence
from urllib.parse import quote

import aiohttp

from forkai.utils.config import config
from forkai.utils.errors import safe_execute_async
from forkai.utils.logger import logger

UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"
PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"

# Marker present in the redirect provider's URL when it has no photo for the query
REDIRECT_PLACEHOLDER_MARKER = "defaultImage"


async def fetch_json(url: str, params: dict, headers: Optional[dict] = None) -> dict:
    """GET a JSON document. Raises aiohttp.ClientResponseError on non-2xx."""
    async with aiohttp.ClientSession() as session:
        async with session.get(url, params=params, headers=headers) as response:
            response.raise_for_status()
            return await response.json()


async def probe_redirect(url: str) -> tuple[str, str]:
    """Follow redirects with a HEAD request and return (final url, content type)."""
    async with aiohttp.ClientSession() as session:
        async with session.head(url, allow_redirects=True) as response:
            response.raise_for_status()
            return str(response.url), response.headers.get("Content-Type", "")


def build_image_query(title: str, suffix: Optional[str] = None) -> str:
    """Strip emoji and punctuation from a title and append the domain qualifier.

    >>> build_image_query("🍝 Spaghetti, Carbonara!")
    'Spaghetti Carbonara food dish'
    """
    suffix = config.IMAGE_QUERY_SUFFIX if suffix is None else suffix
    words = re.sub(r"[^\w\s-]", " ", title or "")
    words = re.sub(r"\s+", " ", words).strip()
    return f"{words} {suffix}".strip()


class ImageSearchProvider:
    """Base class for image search strategies."""

    name = "provider"

    def is_configured(self) -> bool:
        return True

    async def search(self, query: str) -> Optional[str]:
        raise NotImplementedError


class UnsplashProvider(ImageSearchProvider):
    name = "unsplash"

    def __init__(self, access_key: Optional[str] = None, per_page: int = 3) -> None:
        self.access_key = config.UNSPLASH_ACCESS_KEY if access_key is None else access_key
        self.per_page = per_page

    def is_configured(self) -> bool:
        return bool(self.access_key)

    async def search(self, query: str) -> Optional[str]:
        params = {
            "query": query,
            "per_page": self.per_page,
            "orientation": "landscape",
            "client_id": self.access_key,
        }
        data = await fetch_json(UNSPLASH_SEARCH_URL, params)
        results = data.get("results") or []
        if not results:
            return None
        chosen = results[1] if len(results) >= 2 else results[0]
        return (chosen.get("urls") or {}).get("regular")


class PexelsProvider(ImageSearchProvider):
    name = "pexels"

    def __init__(self, api_key: Optional[str] = None) -> None:
        self.api_key = config.PEXELS_API_KEY if api_key is None else api_key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str) -> Optional[str]:
        params = {"query": query, "per_page": 1, "orientation": "landscape"}
        data = await fetch_json(PEXELS_SEARCH_URL, params, headers={"Authorization": self.api_key})
        photos = data.get("photos") or []
        if not photos:
            return None
        return (photos[0].get("src") or {}).get("large")


class RedirectImageProvider(ImageSearchProvider):
    """Keyword redirect service: the final URL is the photo itself."""

    name = "redirect"

    def __init__(self, enabled: Optional[bool] = None, url_template: Optional[str] = None) -> None:
        self.enabled = config.USE_IMAGE_REDIRECT_FALLBACK if enabled is None else enabled
        self.url_template = url_template or config.IMAGE_REDIRECT_URL

    def is_configured(self) -> bool:
        return self.enabled

    async def search(self, query: str) -> Optional[str]:
        keywords = ",".join(quote(word) for word in query.split())
        final_url, content_type = await probe_redirect(self.url_template.format(query=keywords))
        if not content_type.startswith("image/") or REDIRECT_PLACEHOLDER_MARKER in final_url:
            logger.debug(f"Redirect image rejected for '{query}': {content_type} {final_url}")
            return None
        return final_url


PROVIDER_REGISTRY: dict[str, type[ImageSearchProvider]] = {
    "unsplash": UnsplashProvider,
    "pexels": PexelsProvider,
    "redirect": RedirectImageProvider,
}


class ImageResolutionChain:
    """Try providers in order until one returns a URL."""

    def __init__(self, providers: Sequence[ImageSearchProvider], timeout_s: Optional[float] = None) -> None:
        self.providers = list(providers)
        self.timeout_s = config.IMAGE_SEARCH_TIMEOUT if timeout_s is None else timeout_s

    async def resolve(self, title: str) -> Optional[str]:
        """Return an image URL for title, or None when every provider fails or is skipped."""
        query = build_image_query(title)
        for provider in self.providers:
            if not provider.is_configured():
                logger.debug(f"Image provider {provider.name} not configured, skipping")
                continue

            url = await safe_execute_async(
                asyncio.wait_for(provider.search(query), timeout=self.timeout_s),
                f"{provider.name} image search for '{query}'",
                log_level="debug",
            )
            if url:
                logger.debug(f"Image for '{title}' found via {provider.name}")
                return url

        logger.debug(f"No image found for '{title}'")
        return None


def build_chain(order: Optional[Sequence[str]] = None) -> ImageResolutionChain:
    """Build a chain from provider names (defaults to IMAGE_PROVIDER_ORDER)."""
    names = config.IMAGE_PROVIDER_ORDER if order is None else order
    return ImageResolutionChain([PROVIDER_REGISTRY[name]() for name in names])


def build_refresh_chain() -> ImageResolutionChain:
    """Chain used when the caller asks for a different image for a saved recipe."""
    return build_chain(config.IMAGE_REFRESH_PROVIDER_ORDER)
