"""Unit tests for error classification and safe-execute helpers."""

import logging

import pytest

from forkai.utils.errors import (
    CompletionTimeoutError,
    ConfigurationError,
    GenerationError,
    InvalidRequestError,
    ProviderError,
    RecordNotFoundError,
    safe_execute_async,
    safe_execute_sync,
)


class TestErrorClasses:
    @pytest.mark.parametrize(
        "error,status",
        [
            (InvalidRequestError("bad"), 400),
            (RecordNotFoundError("gone"), 404),
            (ConfigurationError("no key"), 500),
            (ProviderError(503, "busy"), 502),
            (CompletionTimeoutError("slow"), 504),
        ],
    )
    def test_status_codes(self, error, status):
        assert isinstance(error, GenerationError)
        assert error.status_code == status

    def test_invalid_request_is_value_error(self):
        assert isinstance(InvalidRequestError("bad"), ValueError)

    def test_provider_error_message_truncates_body(self):
        error = ProviderError(500, "x" * 1000, provider="Text completion")
        assert error.message.startswith("Text completion error 500: ")
        assert len(error.body) == 1000
        assert len(error.message) < 400


class TestSafeExecuteAsync:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def work():
            return "ok"

        assert await safe_execute_async(work(), "work") == "ok"

    @pytest.mark.asyncio
    async def test_returns_none_on_error(self, caplog):
        async def work():
            raise RuntimeError("boom")

        with caplog.at_level(logging.WARNING, logger="forkai"):
            result = await safe_execute_async(work(), "image lookup")

        assert result is None
        assert "image lookup: RuntimeError: boom" in caplog.text


class TestSafeExecuteSync:
    def test_returns_result(self):
        assert safe_execute_sync(lambda: 42, "answer") == 42

    def test_returns_default_on_error(self):
        assert safe_execute_sync(lambda: 1 / 0, "divide", log_level="debug", default_return=0) == 0
