"""
LLM Provider — Abstract Interface

All inference calls go through this interface. Swap providers
by changing SDOH_LLM_PROVIDER in env.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Optional


def strip_code_fences(text: Optional[str]) -> str:
    """Unwrap a ```json ... ``` block; models add one even in JSON mode."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[-1].rsplit("```", 1)[0].strip()
    return cleaned


class LLMProvider(ABC):
    """Abstract base for structured-text-classification providers."""

    @property
    def available(self) -> bool:
        """Whether the provider has what it needs to make a call."""
        return True

    @property
    def model_name(self) -> Optional[str]:
        return None

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
        max_retries: int = 1,
    ) -> str:
        """Generate a text response from the LLM."""
        ...

    async def generate_json(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.2,
        max_retries: int = 1,
    ) -> dict:
        """Generate and parse a JSON object response."""
        text = await self.generate(
            prompt=prompt,
            system_instruction=system_instruction,
            temperature=temperature,
            json_mode=True,
            max_retries=max_retries,
        )
        cleaned = strip_code_fences(text)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"LLM returned invalid JSON: {e}. Raw response: {(text or '')[:300]}"
            ) from e
        if not isinstance(parsed, dict):
            raise ValueError(
                f"LLM returned {type(parsed).__name__}, expected a JSON object"
            )
        return parsed
