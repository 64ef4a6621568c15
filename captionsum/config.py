from __future__ import annotations
import logging
from functools import lru_cache
from typing import Annotated, Literal, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_SUMMARY_MODELS = ("gemini-1.5-flash", "gemini-1.5-pro", "gemini-pro")
DEFAULT_CAPTION_MODELS = ("gemini-1.5-flash",)

# comma separated in the environment, e.g. SUMMARY_MODELS=a,b,c
ModelList = Annotated[Tuple[str, ...], NoDecode]


class Settings(BaseSettings):
    """Service configuration, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    # Gemini
    gemini_api_key: Optional[str] = Field(default=None, description="Required for any generation call.")
    gemini_api_base: str = DEFAULT_GEMINI_API_BASE
    caption_models: ModelList = Field(default=DEFAULT_CAPTION_MODELS, min_length=1)
    summary_models: ModelList = Field(default=DEFAULT_SUMMARY_MODELS, min_length=1)
    generation_timeout: float = Field(default=30.0, gt=0)

    # Transcripts; summaries follow the primary language
    transcript_primary_language: str = "hi"
    transcript_primary_language_name: str = "Hindi"
    transcript_secondary_language: str = "en"
    transcript_secondary_language_name: str = "English"
    transcript_timeout: float = Field(default=10.0, gt=0)
    transcript_max_chars: int = Field(default=8000, gt=0)

    # Captions
    caption_target_kb: int = Field(default=200, gt=0)
    compression_strategy: Literal["binary", "linear"] = "binary"
    max_upload_bytes: int = Field(default=15 * 1024 * 1024, gt=0)
    scratch_dir: Optional[str] = None

    # Peripheral limits
    summary_cache_size: int = Field(default=256, ge=0, description="0 disables the cache.")
    summary_cache_ttl: float = Field(default=3600.0, gt=0)
    max_concurrent_captions: int = Field(default=4, ge=1)

    log_level: str = "INFO"

    @field_validator("caption_models", "summary_models", mode="before")
    @classmethod
    def split_models(cls, v):
        if isinstance(v, str):
            return tuple(m.strip() for m in v.split(",") if m.strip())
        return v

    @field_validator("gemini_api_base")
    @classmethod
    def strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("compression_strategy", "log_level", mode="before")
    @classmethod
    def normalize_case(cls, v, info):
        if not isinstance(v, str):
            return v
        return v.upper() if info.field_name == "log_level" else v.lower()

    @property
    def primary_language(self) -> Tuple[str, str]:
        """(code, display name)"""
        return self.transcript_primary_language, self.transcript_primary_language_name

    @property
    def secondary_language(self) -> Tuple[str, str]:
        return self.transcript_secondary_language, self.transcript_secondary_language_name


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance so it is only parsed once."""
    return Settings()


_LOGGING_CONFIGURED = False


def configure_logging(level: str = "INFO") -> None:
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGING_CONFIGURED = True
