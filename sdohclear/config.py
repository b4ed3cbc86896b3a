"""
SDOHClear Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    ENGINE_VERSION: str = "1.0.0"
    API_VERSION: str = "1"

    # --- Inference Provider ---
    LLM_PROVIDER: str = os.getenv("SDOH_LLM_PROVIDER", "gemini")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    INFERENCE_TIMEOUT_SECONDS: float = float(
        os.getenv("SDOH_INFERENCE_TIMEOUT", "20")
    )

    # --- Screening defaults (used when the caller omits context) ---
    DEFAULT_REQUIRED_SCREENINGS: int = int(
        os.getenv("SDOH_DEFAULT_REQUIRED_SCREENINGS", "20")
    )
    DEFAULT_COMPLETED_SCREENINGS: int = int(
        os.getenv("SDOH_DEFAULT_COMPLETED_SCREENINGS", "15")
    )

    # --- Call sessions ---
    SESSION_TTL_SECONDS: int = int(os.getenv("SDOH_SESSION_TTL", "3600"))
    SESSION_MAX_CALLS: int = int(os.getenv("SDOH_SESSION_MAX_CALLS", "500"))

    # --- Server ---
    HOST: str = os.getenv("SDOH_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("SDOH_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("SDOH_CORS_ORIGINS", "*")


settings = Settings()
