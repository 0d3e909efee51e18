"""Completion client for text and vision generation.

complete(request, timeout_ms) sends one CompletionRequest to the provider
selected by request.provider_kind and returns the raw reply text:

- TEXT: OpenAI-compatible chat completion endpoint (Groq by default), called
  over aiohttp. Reply at choices[0].message.content.
- VISION: Gemini generateContent via the google-genai SDK, with the photo
  attached as an inline bytes part. Reply at candidates[0].content.parts[*].text.

Every call races a hard deadline. Failures are classified:
CompletionTimeoutError, ProviderError(status, body),
MalformedProviderResponseError, ConfigurationError (missing credential).
There are no retries: a failed call is terminal for the request.
"""

import asyncio
import json
from typing import Any, Optional

import aiohttp
import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from forkai.models.models import CompletionRequest, ProviderKind, Role
from forkai.utils.config import config
from forkai.utils.errors import (
    CompletionTimeoutError,
    ConfigurationError,
    MalformedProviderResponseError,
    ProviderError,
)
from forkai.utils.logger import logger


async def post_json(url: str, payload: dict, headers: dict) -> tuple[int, str]:
    """POST a JSON payload and return (status, body text)."""
    async with aiohttp.ClientSession() as session:
        async with session.post(url, json=payload, headers=headers) as response:
            return response.status, await response.text()


def build_chat_messages(request: CompletionRequest) -> list[dict]:
    """Serialize turns into OpenAI-style messages, system instruction first."""
    messages = [{"role": "system", "content": request.system_instruction}] if request.system_instruction else []
    for turn in request.turns:
        role = "user" if turn.role is Role.USER else "assistant"
        messages.append({"role": role, "content": turn.text})
    return messages


def build_gemini_contents(request: CompletionRequest) -> list[types.Content]:
    """Serialize turns into Gemini contents: inline image part first, then the text."""
    contents = []
    for turn in request.turns:
        parts = []
        if turn.media is not None:
            parts.append(types.Part.from_bytes(data=turn.media.data, mime_type=turn.media.mime_type))
        parts.append(types.Part.from_text(text=turn.text))
        contents.append(types.Content(role="user" if turn.role is Role.USER else "model", parts=parts))
    return contents


def extract_chat_text(body: str) -> str:
    """Pull choices[0].message.content out of a chat completion envelope."""
    try:
        data = json.loads(body)
        content = data["choices"][0]["message"]["content"]
    except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
        raise MalformedProviderResponseError(
            f"Text completion response has no choices[0].message.content: {body[:200]}"
        ) from e
    if not isinstance(content, str):
        raise MalformedProviderResponseError("Text completion content is not a string")
    return content


def extract_gemini_text(response: Any) -> str:
    """Join the text parts of the first candidate of a generateContent response."""
    try:
        parts = response.candidates[0].content.parts
    except (AttributeError, IndexError, TypeError) as e:
        raise MalformedProviderResponseError("Vision response has no candidates[0].content.parts") from e
    texts = [part.text for part in parts or [] if getattr(part, "text", None)]
    if not texts:
        raise MalformedProviderResponseError("Vision response contains no text part")
    return "".join(texts)


class CompletionClient:
    """Send CompletionRequests to the text or vision provider.

    Credentials default to the configured keys; pass them explicitly in tests.
    """

    def __init__(
        self,
        text_api_key: Optional[str] = None,
        vision_api_key: Optional[str] = None,
        text_url: Optional[str] = None,
    ) -> None:
        self.text_api_key = config.GROQ_API_KEY if text_api_key is None else text_api_key
        self.vision_api_key = config.GEMINI_API_KEY if vision_api_key is None else vision_api_key
        self.text_url = text_url or config.TEXT_COMPLETION_URL

    async def complete(self, request: CompletionRequest, timeout_ms: int) -> str:
        """Run one completion call under a hard deadline.

        Args:
            request: Immutable completion request.
            timeout_ms: Deadline for the whole call, in milliseconds.

        Returns:
            Raw reply text.

        Raises:
            ConfigurationError: Provider credential missing.
            CompletionTimeoutError: Deadline exceeded.
            ProviderError: Non-success status from the provider.
            MalformedProviderResponseError: Reply envelope lacks the text field.
        """
        if request.provider_kind is ProviderKind.VISION:
            call = self._complete_vision(request)
        else:
            call = self._complete_text(request)

        try:
            return await asyncio.wait_for(call, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            logger.warning(f"{request.provider_kind.value} completion timed out after {timeout_ms}ms")
            raise CompletionTimeoutError(
                f"{request.provider_kind.value} completion timed out after {timeout_ms}ms"
            ) from e

    async def _complete_text(self, request: CompletionRequest) -> str:
        if not self.text_api_key:
            raise ConfigurationError("GROQ_API_KEY is not configured")

        model = request.model or config.TEXT_MODEL
        payload = {
            "model": model,
            "messages": build_chat_messages(request),
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
        }
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.text_api_key}"}

        logger.debug(f"Text completion: model={model}, turns={len(request.turns)}, max_tokens={request.max_output_tokens}")
        try:
            status, body = await post_json(self.text_url, payload, headers)
        except aiohttp.ClientError as e:
            raise ProviderError(None, str(e), provider="Text completion") from e

        if not 200 <= status < 300:
            logger.warning(f"Text completion failed with status {status}")
            raise ProviderError(status, body, provider="Text completion")
        return extract_chat_text(body)

    async def _complete_vision(self, request: CompletionRequest) -> str:
        if not self.vision_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")

        model = request.model or config.IMAGE_DETECTION_MODEL
        client = genai.Client(api_key=self.vision_api_key)
        generation_config = types.GenerateContentConfig(
            system_instruction=request.system_instruction or None,
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
        )

        logger.debug(f"Vision completion: model={model}, turns={len(request.turns)}")
        try:
            # The SDK client is synchronous; run it off the event loop
            response = await asyncio.to_thread(
                client.models.generate_content,
                model=model,
                contents=build_gemini_contents(request),
                config=generation_config,
            )
        except genai_errors.APIError as e:
            logger.warning(f"Vision completion failed with status {e.code}")
            raise ProviderError(e.code, str(e.message or e), provider="Gemini Vision") from e
        except httpx.HTTPError as e:
            logger.warning(f"Vision completion transport failure: {type(e).__name__}: {e}")
            raise ProviderError(None, str(e), provider="Gemini Vision") from e

        return extract_gemini_text(response)


async def complete(request: CompletionRequest, timeout_ms: int) -> str:
    """Module-level shortcut using the configured credentials."""
    return await CompletionClient().complete(request, timeout_ms)
