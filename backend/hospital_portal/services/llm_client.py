"""
External generative-language API client.
Talks to an OpenAI-compatible chat-completions endpoint with a bearer API key.
Supports mock mode for development when the external API is unavailable.
"""
import logging
from typing import Optional

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class LLMClientError(Exception):
    """Any failure obtaining a completion. The message carries the cause."""


MOCK_COMPLETION = """Patient Overview

Mock clinical summary generated without contacting the language model.

Clinical Interpretation

Findings should be interpreted against the full record.

Contributing Factors

Not assessed in mock mode.

Risk Indicators / Red Flags

Not assessed in mock mode.

Medication & Therapy Considerations

Not assessed in mock mode.

Monitoring & Follow-up

Routine follow-up.

Practical Care Advice

Follow the care plan agreed with your clinician."""


class GenerativeLanguageClient:
    """HTTP client for the hosted language model."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url if base_url is not None else settings.LLM_API_URL
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.mock_mode = settings.LLM_MOCK_MODE if mock_mode is None else mock_mode
        self._transport = transport

    def complete(
        self,
        system_prompt: str,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Send a prompt and return the completion text.
        Raises LLMClientError on missing configuration, transport failure,
        non-2xx status or an empty completion.
        """
        if self.mock_mode:
            logger.debug("Using mock completion (mock_mode=%s)", self.mock_mode)
            return MOCK_COMPLETION

        if not self.api_key:
            raise LLMClientError("LLM API key is not configured")
        if not self.base_url:
            raise LLMClientError("LLM API URL is not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
            "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(
                    f"{self.base_url.rstrip('/')}/chat/completions",
                    json=body,
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            raise LLMClientError(f"Request timeout after {self.timeout} seconds: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMClientError(f"Transport error: {exc}") from exc

        if resp.status_code == 503:
            raise LLMClientError("LLM API error: 503 service unavailable")
        if resp.is_error:
            raise LLMClientError(f"LLM API error: {resp.status_code} {resp.reason_phrase}: {resp.text[:200]}")

        try:
            payload = resp.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMClientError(f"Malformed completion payload: {exc}") from exc

        if not content or not str(content).strip():
            raise LLMClientError("Empty completion received")
        return str(content)


llm_client = GenerativeLanguageClient()
