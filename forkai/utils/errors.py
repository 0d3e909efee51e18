"""Error classification and graceful-degradation helpers.

Every failure that can abort a generation request is a subclass of
GenerationError and carries the HTTP status the surrounding web layer should
answer with. Optional operations (image lookups, compression) never raise:
they go through safe_execute_async / safe_execute_sync, which log the failure
and hand back a default value instead.
"""

from typing import Optional

from forkai.utils.logger import logger


class GenerationError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(GenerationError, ValueError):
    """Caller input is missing or malformed (e.g. no image, bad base64)."""

    status_code = 400


class RecordNotFoundError(GenerationError):
    """The persistence collaborator has no record for the given key."""

    status_code = 404


class ConfigurationError(GenerationError):
    """A provider credential or setting required for this call is missing."""

    status_code = 500


class CompletionTimeoutError(GenerationError):
    """An external completion call exceeded its deadline."""

    status_code = 504


class ProviderError(GenerationError):
    """Completion provider answered with a non-success status."""

    status_code = 502

    def __init__(self, status: Optional[int], body: str, provider: str = "provider") -> None:
        super().__init__(f"{provider} error {status}: {body[:300]}")
        self.status = status
        self.body = body
        self.provider = provider


class MalformedProviderResponseError(GenerationError):
    """Success status, but the expected text field is absent from the envelope."""

    status_code = 502


class NoStructuredPayloadError(GenerationError):
    """Generated text contains no JSON object/array span."""

    status_code = 502


class InvalidJsonError(GenerationError):
    """A JSON span was found but could not be parsed."""

    status_code = 502


def _log_error(operation_name: str, exception: Exception, log_level: str = "warning") -> None:
    """Log error with appropriate level. Helper to reduce duplication.

    Args:
        operation_name: Description for logging
        exception: Exception that occurred
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
    """
    msg = f"{operation_name}: {type(exception).__name__}: {exception}"
    if log_level == "debug":
        logger.debug(msg)
    elif log_level == "error":
        logger.error(msg)
    else:
        logger.warning(msg)


async def safe_execute_async(coro, operation_name: str, log_level: str = "warning"):
    """Safely execute async operation with consistent error logging.

    Used for optional operations that degrade gracefully, such as a single
    image-search provider attempt: a timeout or HTTP failure is logged and the
    caller moves on to the next provider.

    Args:
        coro: Awaitable coroutine to execute.
        operation_name: Description for logging (e.g., "unsplash image search").
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".

    Returns:
        Result of coroutine if successful, None on exception.
    """
    try:
        return await coro
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return None


def safe_execute_sync(func, operation_name: str, log_level: str = "warning", default_return=None):
    """Synchronous version of safe_execute_async.

    Args:
        func: Callable to execute (no args).
        operation_name: Description for logging.
        log_level: Logging level ("debug", "warning", "error"). Default: "warning".
        default_return: Value to return on exception, e.g. the uncompressed image.

    Returns:
        Result of func if successful, default_return on exception.
    """
    try:
        return func()
    except Exception as e:
        _log_error(operation_name, e, log_level)
        return default_return
