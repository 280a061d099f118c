import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
from httpx import HTTPStatusError, TimeoutException, TransportError
from google import genai
from google.genai import types

from app.core.config import settings
from app.core.exceptions import APIClientError, APITimeoutError, ConfigurationError
from app.utils.json_parser import parse_json_safely
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class DocumentInput:
    """A document handed to the model by URL."""

    url: str
    media_type: str
    kind: str  # "image" | "pdf"
    filename: str = "document"


class StructuredLLMClient(Protocol):
    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        document: DocumentInput,
        response_schema: Dict[str, Any],
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        ...


class BaseLLMClient:
    """Base client for LLM API interactions.

    Handles common logic for HTTP requests, retries, timeout management,
    and error logging.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2
    ):
        """Initialize the LLM client.

        Args:
            api_key: API key for authentication
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.logger = LOGGER

    async def call_api(
        self,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """POST ``payload`` to the API with retry logic.

        Raises:
            APIClientError: If the API call fails after retries
            APITimeoutError: If the API call times out after retries
        """
        url = self.base_url
        default_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if headers:
            default_headers.update(headers)

        self.logger.debug(f"Calling LLM API: {url}", extra={"timeout": self.timeout})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(url, headers=default_headers, json=payload)
                    response.raise_for_status()
                    return response.json()

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, url)

                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, url)

                except TransportError as e:
                    await self._handle_transport_error(e, attempt, url)

        raise APIClientError(f"Failed to call API {url} after {self.max_retries} attempts")

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, url: str):
        status_code = error.response.status_code
        error_body = error.response.text

        self.logger.warning(
            f"API HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "status_code": status_code, "error_body": error_body[:500]}
        )

        # 4xx other than 429 will not get better on retry
        if 400 <= status_code < 500 and status_code != 429:
            raise APIClientError(f"API Client Error {status_code}: {error_body[:500]}") from error

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API HTTP Error {status_code} after retries") from error

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, url: str):
        self.logger.warning(f"API Timeout (Attempt {attempt + 1}/{self.max_retries})", extra={"url": url})

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts") from error

    async def _handle_transport_error(self, error: TransportError, attempt: int, url: str):
        self.logger.warning(
            f"API transport error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "error": str(error)}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API Error: {str(error)}") from error

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        await asyncio.sleep(self.retry_delay * (2 ** attempt))


class OpenRouterClient:
    """Structured generation through OpenRouter's chat completions API.

    The document is passed by URL: images as ``image_url`` parts, PDFs as
    ``file`` parts. The answer is constrained with a ``json_schema`` response
    format.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
        reasoning_effort: Optional[str] = None,
    ):
        self.model = model
        self.reasoning_effort = reasoning_effort
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )
        LOGGER.info(f"Initialized OpenRouter client with model {self.model}")

    @staticmethod
    def _document_part(document: DocumentInput) -> Dict[str, Any]:
        if document.kind == "image":
            return {"type": "image_url", "image_url": {"url": document.url}}
        return {
            "type": "file",
            "file": {"filename": document.filename, "file_data": document.url},
        }

    def build_payload(
        self,
        system_prompt: str,
        user_prompt: str,
        document: DocumentInput,
        response_schema: Dict[str, Any],
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": user_prompt},
                        self._document_part(document),
                    ],
                },
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": False, "schema": response_schema},
            },
            "temperature": 0.0,
        }
        if self.reasoning_effort:
            payload["reasoning"] = {"effort": self.reasoning_effort}
        return payload

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        document: DocumentInput,
        response_schema: Dict[str, Any],
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        """Ask the model for a JSON object matching ``response_schema``.

        Raises:
            APIClientError: If the call fails or the answer is not a JSON object
        """
        payload = self.build_payload(system_prompt, user_prompt, document, response_schema, schema_name)
        response = await self.client.call_api(payload=payload)

        choices = response.get("choices") or []
        if not choices:
            error = response.get("error") or {}
            raise APIClientError(f"Invalid response format from OpenRouter: {error.get('message', 'no choices')}")

        content = choices[0].get("message", {}).get("content") or ""
        parsed = parse_json_safely(content)
        if parsed is None:
            raise APIClientError("Model response was not a valid JSON object")
        return parsed


class GeminiClient:
    """Structured generation through the Google Gemini API.

    Gemini cannot fetch signed URLs itself, so the document is downloaded and
    sent inline.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
    ):
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.client = genai.Client(api_key=api_key)
        LOGGER.info(f"Initialized Gemini client with model {self.model}")

    async def _download(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise APIClientError(f"Could not download document: {e}") from e

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        document: DocumentInput,
        response_schema: Dict[str, Any],
        schema_name: str = "response",
    ) -> Dict[str, Any]:
        """Ask Gemini for a JSON object matching ``response_schema``.

        Raises:
            APIClientError: If generation fails after retries or the answer is not JSON
        """
        data = await self._download(document.url)
        contents = [
            types.Part.from_bytes(data=data, mime_type=document.media_type),
            user_prompt,
        ]
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=0.0,
            response_mime_type="application/json",
            response_json_schema=response_schema,
        )

        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
                break
            except Exception as e:
                LOGGER.warning(f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))
                else:
                    raise APIClientError(f"Gemini generation failed: {e}") from e

        parsed = parse_json_safely(response.text or "")
        if parsed is None:
            raise APIClientError("Model response was not a valid JSON object")
        return parsed


def create_llm_client(provider: Optional[str] = None) -> StructuredLLMClient:
    """Build the structured-generation client selected by ``LLM_PROVIDER``.

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing
    """
    llm = settings.llm
    provider = (provider or llm.provider).lower()

    if provider == "openrouter":
        if not llm.openrouter_api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")
        return OpenRouterClient(
            api_key=llm.openrouter_api_key,
            model=llm.openrouter_model,
            base_url=llm.openrouter_api_url,
            timeout=llm.request_timeout,
            max_retries=llm.max_retries,
            retry_delay=llm.retry_delay,
            reasoning_effort=llm.reasoning_effort,
        )

    if provider == "gemini":
        if not llm.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        return GeminiClient(
            api_key=llm.gemini_api_key,
            model=llm.gemini_model,
            timeout=llm.request_timeout,
            max_retries=llm.max_retries,
            retry_delay=llm.retry_delay,
        )

    raise ConfigurationError(f"Unsupported LLM provider: {provider}")
