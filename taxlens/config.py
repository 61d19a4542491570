"""
config.py — TaxLens application settings.

Usage:
    from taxlens.config import settings
    print(settings.mistral_model)

Never use FastAPI Depends() for settings — import directly as a module-level singleton.
"""
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taxlens.agents.evaluator_agent.regime_tables import DEFAULT_TAX_YEAR, get_tax_year_rules


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore any extra env vars
    )

    # --- External APIs ---
    # Empty key → AI client is not created; extraction fails, advice falls back to default
    mistral_api_key: str = ""
    mistral_model: str = "mistral-small-latest"
    extraction_temperature: float = 0.0
    advice_temperature: float = 0.7
    ai_max_tokens: int = 1024
    ai_concurrency: int = 2

    # --- Tax rules ---
    tax_year: str = DEFAULT_TAX_YEAR
    # No city is collected from free text; HRA uses the metro 50% limit
    hra_assume_metro: bool = True

    # --- CORS ---
    # Comma-separated list of allowed frontend origins
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # --- Application ---
    debug: bool = False
    app_version: str = "0.1.0"

    @field_validator("tax_year")
    @classmethod
    def _tax_year_has_tables(cls, value: str) -> str:
        """An unknown TAX_YEAR fails at startup, not on every analysis request."""
        get_tax_year_rules(value)
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        """Split comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level singleton — import this throughout the codebase
settings = Settings()
