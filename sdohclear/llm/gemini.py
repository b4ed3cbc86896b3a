"""
Gemini Provider — Google Gemini API implementation.

Uses the google.genai SDK. The client is created on first call, so the
engine loads without an API key; with no key the provider reports itself
unavailable and detection never reaches it.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from google import genai
from google.genai import types

from sdohclear.config import settings
from sdohclear.llm import LLMProvider
from sdohclear.logging import get_logger

logger = get_logger("llm.gemini")

_TRANSIENT_MARKERS = (
    "429", "503", "500", "rate", "quota", "timeout",
    "connection", "unavailable", "overloaded",
)


def _is_transient(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class GeminiProvider(LLMProvider):
    """Google Gemini LLM provider."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self._model = model or settings.GEMINI_MODEL
        self._client: Optional[genai.Client] = None

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    @property
    def model_name(self) -> Optional[str]:
        return self._model

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise RuntimeError(
                    "GEMINI_API_KEY not set. Get one from "
                    "https://aistudio.google.com/apikey"
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _build_config(
        self,
        system_instruction: Optional[str],
        temperature: float,
        json_mode: bool,
    ) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
            response_mime_type="application/json" if json_mode else None,
        )

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
        max_retries: int = 1,
    ) -> str:
        """
        Send one prompt to Gemini and return the response text.

        Transient failures (rate limits, 5xx, dropped connections) are
        retried with exponential backoff up to max_retries attempts in
        total. A response with no text, e.g. one withheld by the safety
        filter, raises ValueError.
        """
        client = self._get_client()
        config = self._build_config(system_instruction, temperature, json_mode)
        attempts = max(1, max_retries)

        for attempt in range(attempts):
            try:
                response = await client.aio.models.generate_content(
                    model=self._model,
                    contents=prompt,
                    config=config,
                )
            except Exception as e:
                if _is_transient(e) and attempt < attempts - 1:
                    logger.warning(
                        "Transient Gemini error, retrying (attempt %d/%d)",
                        attempt + 1, attempts,
                        extra={"model": self._model, "error": str(e)},
                    )
                    await asyncio.sleep(2 ** attempt)
                    continue
                raise

            if not response.text:
                raise ValueError(f"Gemini model {self._model} returned no text")
            return response.text

        raise RuntimeError("Gemini generate exhausted retries")  # unreachable
