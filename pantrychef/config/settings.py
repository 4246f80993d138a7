# pantrychef/config/settings.py
"""
Application configuration using pydantic-settings (pydantic v2 style).

All environment-driven configuration lives here. Prefer reading values
from environment variables; do not rely on os.getenv inline defaults which
can silently hide missing configuration.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration loaded from environment.

    Relevant environment variables:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY
      - DATABASE_URL
      - CREATE_SCHEMA_ON_STARTUP
      - OPENAI_API_KEY
      - OPENAI_MODEL
      - GENERATION_PROVIDER          (edge_function | openai)
      - GENERATION_FUNCTION_NAME
      - GENERATION_TIMEOUT_SECONDS
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Supabase
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # Direct Postgres access, only used to create the schema
    database_url: Optional[str] = Field(default=None)
    create_schema_on_startup: bool = Field(default=False)

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")

    # Recipe generation
    generation_provider: Literal["edge_function", "openai"] = Field(
        default="edge_function"
    )
    generation_function_name: str = Field(default="generate-recipe")
    generation_timeout_seconds: float = Field(default=30.0, gt=0)

    # --- validators / post-init checks ---
    @field_validator("supabase_url", "supabase_service_role_key", "openai_api_key")
    @classmethod
    def maybe_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    def model_post_init(self, __context) -> None:  # pydantic v2 hooks
        """
        Light-weight notice that runs after the model is constructed.
        Uses logging (not print) so messages show up in server logs.
        """
        if not self.supabase_url or not self.supabase_service_role_key:
            logger.warning(
                "Supabase credentials are not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to enable recipe storage."
            )
        if self.generation_provider == "openai" and not self.openai_api_key:
            logger.warning(
                "GENERATION_PROVIDER=openai but OPENAI_API_KEY is not set. "
                "Recipe generation will report the service as unavailable."
            )

    @property
    def functions_url(self) -> Optional[str]:
        """Base URL of the Supabase edge functions for this project."""
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/functions/v1"


# single exporter
settings = Settings()
