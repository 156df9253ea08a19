from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application runtime configuration."""

    app_name: str = Field(default="voxlate-backend", alias="APP_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    port: int = Field(default=3005, alias="PORT")
    allow_origins_raw: str | None = Field(default=None, alias="ALLOW_ORIGINS")

    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com", alias="GEMINI_BASE_URL"
    )
    gemini_timeout_seconds: float = Field(default=120.0, alias="GEMINI_TIMEOUT_SECONDS")
    gemini_tts_model: str = Field(default="gemini-2.5-flash-preview-tts", alias="GEMINI_TTS_MODEL")
    gemini_transcribe_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_TRANSCRIBE_MODEL")
    gemini_translate_model: str = Field(default="gemini-2.0-flash-lite", alias="GEMINI_TRANSLATE_MODEL")

    upload_dir: Path = Field(default=Path("uploads"), alias="UPLOAD_DIR")
    output_dir: Path = Field(default=Path("output"), alias="OUTPUT_DIR")
    soundcheck_dir: Path = Field(default=Path("soundcheck"), alias="SOUNDCHECK_DIR")
    max_upload_mb: int = Field(default=1024, alias="MAX_UPLOAD_MB")
    max_transcribe_mb: int = Field(default=20, alias="MAX_TRANSCRIBE_MB")
    max_paragraph_interval_seconds: float = Field(default=30.0, alias="MAX_PARAGRAPH_INTERVAL_SECONDS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)

    @property
    def allow_origins(self) -> List[str]:
        if not self.allow_origins_raw:
            return ["*"]
        return [origin.strip() for origin in self.allow_origins_raw.split(",") if origin.strip()]

    @property
    def gemini_ready(self) -> bool:
        return bool(self.gemini_api_key and self.gemini_api_key.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()
