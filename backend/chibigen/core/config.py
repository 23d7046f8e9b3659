"""Configuration management using pydantic-settings."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gemini API key (AI Studio). Leave empty when using Vertex AI.
    gemini_api_key: str = ""

    # Vertex AI settings (optional alternative to the API key)
    use_vertexai: bool = False
    gcp_project_id: str = ""
    vertex_ai_location: str = "global"

    # Model identifiers
    text_model: str = "gemini-2.5-flash"
    image_model: str = "imagen-4.0-generate-001"
    edit_model: str = "gemini-2.5-flash-image"

    # Application settings
    app_name: str = "chibigen"
    images_dir: str = "data/images"

    # Server settings
    backend_host: str = "localhost"
    backend_port: int = 8000
    frontend_port: int = 3000


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
