# shared/llm_client.py
"""
Gemini client for structured (JSON schema constrained) generation.

Makes exactly one request per call. Provider failures are raised as LLMError
carrying the HTTP status so callers can classify them; retry policy is left to
the caller.
"""

import logging
import time
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class LLMError(Exception):
    """Base exception for LLM client errors"""

    def __init__(
        self, message: str, provider: str = None, status_code: int = None, retry_after: int = None
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.retry_after = retry_after


class GeminiClient:
    """Thin async wrapper over the Gemini ``generateContent`` REST endpoint."""

    provider = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        temperature: float = 0.7,
        max_output_tokens: int = 4000,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = GEMINI_API_BASE,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_content(
        self, prompt: str, response_schema: Optional[dict] = None
    ) -> tuple[str, dict]:
        """
        Send a single prompt and return the raw response text.

        Args:
            prompt: The prompt to send to the model
            response_schema: OpenAPI-style schema the response must follow

        Returns:
            Tuple[str, Dict]: (response_text, generation_metadata)

        Raises:
            LLMError: On any transport or provider failure
        """
        if not self.api_key:
            raise LLMError("Gemini API key not configured", provider=self.provider)

        generation_config = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
        }
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        start_time = time.time()
        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, body)
        except httpx.TimeoutException:
            raise LLMError(
                f"Timeout calling {self.provider} API", provider=self.provider, status_code=408
            )
        except httpx.HTTPError as e:
            raise LLMError(
                f"Connection error to {self.provider} API: {e}",
                provider=self.provider,
                status_code=503,
            )

        latency_ms = int((time.time() - start_time) * 1000)

        if response.status_code != 200:
            raise self._error_from_response(response)

        try:
            result = response.json()
        except ValueError as e:
            raise LLMError(f"Invalid Gemini response body: {e}", provider=self.provider)

        text = self._extract_text(result)
        usage = result.get("usageMetadata", {}) or {}
        usage_data = {
            "prompt_tokens": usage.get("promptTokenCount", 0),
            "completion_tokens": usage.get("candidatesTokenCount", 0),
            "total_tokens": usage.get("totalTokenCount", 0),
        }

        logger.info(
            f"GEMINI: {self.model} responded in {latency_ms}ms "
            f"({usage_data['total_tokens']} tokens)"
        )

        return text, {
            "provider": self.provider,
            "model_id": self.model,
            "tokens_used": usage_data,
            "generation_time_ms": latency_ms,
        }

    async def _post(self, client: httpx.AsyncClient, body: dict) -> httpx.Response:
        return await client.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self.api_key,
            },
            json=body,
            timeout=self.timeout,
        )

    def _extract_text(self, result: dict) -> str:
        """Concatenate the text parts of the first candidate"""
        try:
            parts = result["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            # Blocked prompts come back without candidates; treated as an empty answer
            block_reason = (result.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                logger.warning(f"GEMINI: Prompt blocked: {block_reason}")
            return ""

        return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()

    def _error_from_response(self, response: httpx.Response) -> LLMError:
        try:
            error_data = response.json()
            error_message = error_data.get("error", {}).get("message", response.text)
        except (ValueError, KeyError, TypeError, AttributeError):
            error_message = f"Failed to parse error response: {response.text[:300]}"

        retry_after = None
        if response.status_code == 429:
            try:
                retry_after = int(response.headers.get("retry-after", 60))
            except (ValueError, TypeError):
                retry_after = 60

        return LLMError(
            f"Gemini API error {response.status_code}: {error_message}",
            provider=self.provider,
            status_code=response.status_code,
            retry_after=retry_after,
        )
