"""Blueprint Estimator configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets are loaded via Firebase Secrets Manager (production) or environment variables (emulator).
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Non-secret configuration only; secrets come from config.secrets
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    """Read an optional integer environment variable."""
    value = os.getenv(name)
    return int(value) if value else None


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: Secrets (OPENAI_API_KEY) should be accessed via config.secrets module,
    not directly from this class. The openai_api_key property delegates to
    the secrets module.
    """

    # LLM Configuration (non-secrets)
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_vision_model: str = field(default_factory=lambda: os.getenv("LLM_VISION_MODEL", os.getenv("LLM_MODEL", "gpt-4o")))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1")))
    llm_max_tokens: Optional[int] = field(default_factory=lambda: _optional_int("LLM_MAX_TOKENS"))

    # Firebase Configuration
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")

    # Pipeline Configuration
    pm_review_threshold: float = field(default_factory=lambda: float(os.getenv("PM_REVIEW_THRESHOLD", "0.8")))
    default_estimated_value: float = field(default_factory=lambda: float(os.getenv("DEFAULT_ESTIMATED_VALUE", "100000")))
    analysis_text_limit: int = field(default_factory=lambda: int(os.getenv("ANALYSIS_TEXT_LIMIT", "0")))
    line_item_analysis_limit: int = field(default_factory=lambda: int(os.getenv("LINE_ITEM_ANALYSIS_LIMIT", "4000")))

    # Upload limits
    max_upload_bytes: int = field(default_factory=lambda: int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024))))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Internal: cached secret value (use openai_api_key property instead)
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get OpenAI API key from Firebase Secrets Manager or environment."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If required settings are missing.
        """
        if not self.openai_api_key and not self.use_firebase_emulators:
            raise ValueError("OPENAI_API_KEY is required in production")

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Singleton settings instance
settings = Settings()
