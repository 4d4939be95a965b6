import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="VIBECUT_", extra="ignore"
    )

    # Application
    app_name: str = "vibecut API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # Composition defaults (used by the default-project constructor and export)
    default_project_name: str = "Untitled Project"
    default_fps: int = 30
    default_width: int = 1920
    default_height: int = 1080
    default_page_duration_ms: int = 5000
    default_background_color: str = "white"

    # History
    history_limit: int = 100

    # Auto-persistence: save-if-dirty after this many seconds of inactivity
    autosave_delay_seconds: float = 10.0

    # File storage
    storage_mode: Literal["durable", "ephemeral"] = "durable"
    local_storage_path: str = "/tmp/vibecut-storage"
    # Where the autosaver writes the current project (durable mode)
    project_file_path: str = "/tmp/vibecut-project.json"

    # Sharing
    share_api_url: str = "http://localhost:8787"
    share_base_url: str = "http://localhost:5173"
    share_timeout_seconds: float = 30.0

    # AI agent
    agent_max_steps: int = 8
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_api_url: str = "https://api.openai.com/v1"
    ai_timeout_seconds: float = 180.0

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:5173,http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
