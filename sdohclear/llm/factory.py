"""
LLM Provider factory.

SDOH_LLM_PROVIDER selects the backend. "none" disables inference so
every detection runs the rule-based path without an outbound call.
"""

from __future__ import annotations

from typing import Optional

from sdohclear.llm import LLMProvider


class DisabledProvider(LLMProvider):
    """Stand-in when inference is switched off by configuration."""

    @property
    def available(self) -> bool:
        return False

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.7,
        json_mode: bool = False,
        max_retries: int = 1,
    ) -> str:
        raise RuntimeError("Inference is disabled (SDOH_LLM_PROVIDER=none)")


def get_provider(provider_name: str = "gemini") -> LLMProvider:
    """Return the provider named by configuration."""
    name = (provider_name or "").strip().lower()
    if name == "gemini":
        from sdohclear.llm.gemini import GeminiProvider
        return GeminiProvider()
    if name in ("none", "off", ""):
        return DisabledProvider()
    raise ValueError(f"Unknown LLM provider: {provider_name}")
