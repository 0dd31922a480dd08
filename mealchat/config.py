"""Engine configuration from environment variables (.env supported)."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from mealchat.domain.conversation.dialogue import DEFAULT_CONFIDENCE_THRESHOLD

PROVIDERS = ("stub", "http")


@dataclass(frozen=True)
class EngineSettings:
    """
    Settings for one engine instance.

    Environment variables:
        MEALCHAT_CONFIDENCE_THRESHOLD: Below this the engine asks for a quantity (0.5)
        MEALCHAT_API_BASE_URL: Root of the analysis/persistence API
        MEALCHAT_API_TOKEN: Bearer token
        MEALCHAT_API_TIMEOUT_S: Per-request timeout (8)
        MEALCHAT_SCORER_PROVIDER: "stub" (default) or "http"
        MEALCHAT_MEAL_API_PROVIDER: "stub" (default) or "http"
        MEALCHAT_IDEMPOTENCY_TTL_S: TTL of idempotency keys (3600)
        LOG_LEVEL: Logging level (INFO)
    """

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    api_base_url: Optional[str] = None
    api_token: Optional[str] = None
    api_timeout_s: float = 8.0
    scorer_provider: str = "stub"
    meal_api_provider: str = "stub"
    idempotency_ttl_s: int = 3600
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be between 0.0 and 1.0, got {self.confidence_threshold}"
            )
        if self.api_timeout_s <= 0:
            raise ValueError(f"api_timeout_s must be positive, got {self.api_timeout_s}")
        for field_name in ("scorer_provider", "meal_api_provider"):
            value = getattr(self, field_name)
            if value not in PROVIDERS:
                raise ValueError(f"{field_name} must be one of {PROVIDERS}, got {value!r}")

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "EngineSettings":
        """Build settings from the environment, loading .env first."""
        if load_env_file:
            load_dotenv()

        return cls(
            confidence_threshold=float(
                os.getenv("MEALCHAT_CONFIDENCE_THRESHOLD", str(DEFAULT_CONFIDENCE_THRESHOLD))
            ),
            api_base_url=os.getenv("MEALCHAT_API_BASE_URL") or None,
            api_token=os.getenv("MEALCHAT_API_TOKEN") or None,
            api_timeout_s=float(os.getenv("MEALCHAT_API_TIMEOUT_S", "8")),
            scorer_provider=os.getenv("MEALCHAT_SCORER_PROVIDER", "stub").lower(),
            meal_api_provider=os.getenv("MEALCHAT_MEAL_API_PROVIDER", "stub").lower(),
            idempotency_ttl_s=int(os.getenv("MEALCHAT_IDEMPOTENCY_TTL_S", "3600")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
