"""Runtime configuration.

Values come from environment variables prefixed ``CONTRACT_INTEL_`` or a
local ``.env`` file. Scoring weights and rule tables are not settings; they
live in the YAML files under ``contract_intelligence/rules``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings."""

    model_config = SettingsConfigDict(
        env_prefix="CONTRACT_INTEL_",
        env_file=".env",
        extra="ignore",
    )

    # Worker pool
    max_workers: int = 4

    # Stage timeouts (seconds)
    stage_timeout_seconds: float = 30.0
    normalizer_timeout_seconds: float = 10.0
    advisor_timeout_seconds: float = 20.0

    # Remote inference; the advisor is consulted only when enabled
    use_advisor: bool = False
    advisor_max_attempts: int = 3
    llm_model: str = "gpt-4-turbo"

    # Rules directory override; the packaged tables are used when unset
    rules_dir: Optional[Path] = None

    # Logging
    log_level: str = "WARNING"


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
