"""
Configuration settings for the CafeVision API
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "CafeVision API"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # Google AI Studio
    google_ai_api_key: str = ""
    analysis_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-2.5-flash-image"
    google_ai_temperature: float = 0.4

    # Generation workflow
    concept_count: int = 10
    request_timeout_seconds: float = 90.0

    # Image upload
    max_image_dimension: int = 1024
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # Sessions are held in process memory only
    max_sessions: int = 500

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_dir: Optional[str] = None  # file logging is off unless set
    log_file_max_bytes: int = 10 * 1024 * 1024
    log_file_backup_count: int = 5
    quiet_loggers: List[str] = ["uvicorn.access", "httpx", "httpcore", "google_genai", "PIL"]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env


# Global settings instance
settings = Settings()
