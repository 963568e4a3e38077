"""Application configuration using Pydantic settings."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./data/edutrack.db"

    environment: str = "development"

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:5173,http://localhost:5174"

    # Clickstream capture client
    clickstream_api_base_url: str = "http://localhost:5000/api"
    clickstream_delivery_timeout: float = 10.0  # seconds per delivery attempt
    clickstream_retry_queue_path: str = "./data/failed_clickstream_events.json"
    clickstream_max_retry_attempts: int = 5

    # Analytics
    analytics_timezone: str = "UTC"  # Calendar days for streaks are bucketed in this zone

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
