import os
from typing import Optional, List, Union
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings"""

    # App settings
    APP_NAME: str = "Creator Discovery API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    PORT: int = 7001

    # Backend settings
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    TABLE_NAME: str = "creatordata"
    LOCAL_DATA_PATH: Optional[str] = None

    # Query settings
    PAGE_SIZE: int = 24
    AI_SAMPLE_SIZE: int = 96
    METRICS_BATCH_SIZE: int = 1000
    REQUEST_TIMEOUT: float = 15.0
    FETCH_MAX_RETRIES: int = 3
    FETCH_RETRY_DELAY: float = 0.5
    FETCH_RETRY_MAX_WAIT: float = 5.0

    # Persisted view state
    STATE_PATH: Optional[str] = None

    # OpenAI / location classifier settings
    OPENAI_API_KEY: Optional[str] = None
    LOCATION_MODEL: str = "gpt-5-mini"
    USE_AI_LOCATION: bool = False

    # CORS settings
    ALLOWED_ORIGINS: Union[str, List[str]] = ["*"]

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_origins(cls, v):
        """Parse ALLOWED_ORIGINS from string or list"""
        if isinstance(v, str):
            if v == "*":
                return ["*"]
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


def _resolve_default_state_path() -> str:
    """Keep view state next to the project unless STATE_PATH overrides it."""
    current_dir = os.path.dirname(os.path.abspath(__file__))
    repo_root = os.path.dirname(current_dir)
    return os.path.join(repo_root, "data", "view_state.json")


# Set default state path if not provided
if not settings.STATE_PATH:
    settings.STATE_PATH = _resolve_default_state_path()
