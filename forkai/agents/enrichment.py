"""Batch image enrichment.

Image providers rate-limit aggressively, so lookups run in fixed-size chunks:
chunk N finishes (or times out) before chunk N+1 starts, and the lookups
inside one chunk run concurrently.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from forkai.utils.config import config
from forkai.utils.logger import logger

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive chunks of at most size elements."""
    if size < 1:
        raise ValueError(f"chunk size must be at least 1, got: {size}")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


async def enrich_all(
    items: list[T],
    title_of: Callable[[T], str],
    resolve: Callable[[str], Awaitable[Optional[str]]],
    chunk_size: Optional[int] = None,
) -> list[T]:
    """Set image_url on every item, in place.

    Args:
        items: Entities with a writable image_url attribute.
        title_of: Returns the title used as the image query.
        resolve: Image lookup, typically ImageResolutionChain.resolve. Must not raise.
        chunk_size: Simultaneous lookups per chunk (default IMAGE_BATCH_SIZE).

    Returns:
        The same list, order preserved.
    """
    size = chunk_size or config.IMAGE_BATCH_SIZE
    chunks = chunked(items, size)
    for index, chunk in enumerate(chunks, start=1):
        logger.debug(f"Enriching image chunk {index}/{len(chunks)} ({len(chunk)} items)")
        urls = await asyncio.gather(*(resolve(title_of(item)) for item in chunk))
        for item, url in zip(chunk, urls):
            item.image_url = url

    found = sum(1 for item in items if item.image_url)
    logger.info(f"Images resolved for {found}/{len(items)} items")
    return items
