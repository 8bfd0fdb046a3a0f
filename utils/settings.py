"""Environment-driven configuration for the browser service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

PROVIDER_IDS = ("openai", "gemini", "flux")


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass
class Settings:
    """Resolved application settings.

    Attributes:
        openai_api_key: Enables the `openai` provider and the click classifier/analysis.
        gemini_api_key: Enables the `gemini` provider, input detection and pre-search.
        replicate_api_token: Enables the `flux` provider.
        default_provider: Provider used when a request does not name one.
        generation_timeout: Upper bound in seconds for one generate/edit call.
        enrichment_timeout: Upper bound in seconds for classifier/detector/pre-search calls.
        database_dir: When set, sessions are upserted into `<database_dir>/app.db`.
    """

    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    replicate_api_token: Optional[str] = None
    default_provider: str = "gemini"
    generation_timeout: float = 120.0
    enrichment_timeout: float = 30.0
    openai_image_model: str = "gpt-image-1"
    openai_vision_model: str = "gpt-4o"
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_search_model: str = "gemini-2.0-flash"
    flux_model: str = "black-forest-labs/flux-dev"
    database_dir: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after `load_dotenv`)."""
        default_provider = (_env_str("IMAGE_PROVIDER", "gemini") or "gemini").lower()
        if default_provider not in PROVIDER_IDS:
            raise RuntimeError(
                f"IMAGE_PROVIDER must be one of {', '.join(PROVIDER_IDS)}, got {default_provider!r}"
            )
        return cls(
            openai_api_key=_env_str("OPENAI_API_KEY"),
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            replicate_api_token=_env_str("REPLICATE_API_TOKEN"),
            default_provider=default_provider,
            generation_timeout=_env_float("GENERATION_TIMEOUT_SECONDS", 120.0),
            enrichment_timeout=_env_float("ENRICHMENT_TIMEOUT_SECONDS", 30.0),
            openai_image_model=_env_str("OPENAI_IMAGE_MODEL", "gpt-image-1"),
            openai_vision_model=_env_str("OPENAI_VISION_MODEL", "gpt-4o"),
            gemini_image_model=_env_str("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
            gemini_text_model=_env_str("GEMINI_TEXT_MODEL", "gemini-2.5-flash"),
            gemini_search_model=_env_str("GEMINI_SEARCH_MODEL", "gemini-2.0-flash"),
            flux_model=_env_str("FLUX_MODEL", "black-forest-labs/flux-dev"),
            database_dir=_env_str("DATABASE_DIR"),
            log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        )
