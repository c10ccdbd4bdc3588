"""Runtime settings read from the environment (prefix ``MATHMIND_``) or ``.env``."""
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MATHMIND_", env_file=".env", extra="ignore")

    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MATHMIND_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    default_provider: str = "gemini"

    # Gemini models per feature
    plan_model: str = "gemini-2.5-flash"
    tutor_model: str = "gemini-3-pro-preview"
    tutor_thinking_budget: int = 32768
    solver_model: str = "gemini-3-pro-preview"
    search_model: str = "gemini-2.5-flash"
    fast_model: str = "gemini-flash-lite-latest"
    image_model: str = "gemini-3-pro-image-preview"
    fallback_image_model: str = "gemini-2.5-flash-image"
    tts_model: str = "gemini-2.5-flash-preview-tts"

    # Other providers for presentation planning
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-3-5-sonnet-20240620"

    illustration_workers: int = 1
    tts_max_chars: int = 500
    tts_voice: str = "Puck"
    output_dir: str = "generated"

    @field_validator("illustration_workers", "tts_max_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
