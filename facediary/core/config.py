"""
Application configuration via Pydantic Settings.
Loads from FACEDIARY_* environment variables with validation and defaults.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FACEDIARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server ===
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=3002)
    allowed_origins: str = Field(default="*")

    # === Verification ===
    match_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    min_mood_confidence: float = Field(default=0.1, ge=0.0, le=1.0)

    # === Detection ===
    detector_model: str = Field(default="hog")

    # === Capture ===
    camera_index: int = Field(default=0)
    camera_fps: float = Field(default=30.0, gt=0)

    # === Storage ===
    template_path: str = Field(default="data/face_template.json")

    # === Logging ===
    log_level: str = Field(default="INFO")

    @property
    def cors_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
