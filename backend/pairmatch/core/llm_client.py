"""
Client for OpenAI-compatible chat completion APIs (Groq by default)
"""
import json
import re
from typing import Any, Dict, Optional

import httpx

from pairmatch.core.config import Settings, get_settings
from pairmatch.core.exceptions import GenerationError, RateLimitedError
from pairmatch.core.logging_config import LoggingConfig
from pairmatch.core.metrics import generation_attempts_total

logger = LoggingConfig.get_logger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def parse_json_content(content: str) -> Dict[str, Any]:
    """
    Parse the model message content as a JSON object.

    Models occasionally wrap the object in a markdown code block even when
    asked not to, so fenced content is unwrapped first.
    """
    if content is None or not content.strip():
        raise GenerationError("Generation service returned empty content")

    text = content.strip()
    fenced = _CODE_FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Generation service returned malformed JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise GenerationError("Generation service returned JSON that is not an object")
    return parsed


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ChatCompletionClient:
    """
    Sends a single system prompt and expects a JSON object back.

    One call is one HTTP attempt; retries are layered on top by the caller.
    A 429 answer raises RateLimitedError, every other failure GenerationError.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.groq_api_key)

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.settings.groq_model,
            "messages": [{"role": "system", "content": prompt}],
            "response_format": {"type": "json_object"},
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.groq_api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        timeout = httpx.Timeout(self.settings.generation_timeout_seconds)
        if self._http_client is not None:
            return await self._http_client.post(
                self.settings.groq_base_url,
                json=payload,
                headers=self._headers(),
                timeout=timeout,
            )
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(
                self.settings.groq_base_url,
                json=payload,
                headers=self._headers(),
            )

    async def complete_json(self, prompt: str) -> Dict[str, Any]:
        """
        Run one chat completion and return the parsed JSON object.

        Raises:
            RateLimitedError: the service answered 429
            GenerationError: any other failure (not configured, network,
                timeout, non-2xx status, malformed body)
        """
        if not self.is_configured:
            generation_attempts_total.labels(status="not_configured").inc()
            raise GenerationError("Generation service API key is not configured")

        try:
            response = await self._post(self._build_payload(prompt))
        except httpx.TimeoutException as e:
            generation_attempts_total.labels(status="timeout").inc()
            raise GenerationError(
                f"Generation request timed out after {self.settings.generation_timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            generation_attempts_total.labels(status="network_error").inc()
            raise GenerationError(f"Error calling generation service: {e}") from e

        generation_attempts_total.labels(status=str(response.status_code)).inc()

        if response.status_code == 429:
            raise RateLimitedError(retry_after=_retry_after(response))
        if response.status_code >= 400:
            raise GenerationError(
                f"HTTP error from generation service: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise GenerationError("Generation service returned a non-JSON body") from e

        choices = body.get("choices") if isinstance(body, dict) else None
        if not choices:
            raise GenerationError("Generation service returned no choices")

        message = choices[0].get("message") or {}
        logger.debug(
            "Generation service answered",
            extra={"model": self.settings.groq_model, "usage": body.get("usage")},
        )
        return parse_json_content(message.get("content"))
