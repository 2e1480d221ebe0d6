"""
Application settings.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/receipts.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File storage
    DATA_DIR: str = "./data"

    # Request guard for inline base64 images (matches a 10mb JSON body limit)
    IMAGE_MAX_BYTES: int = 10 * 1024 * 1024

    # Extraction model
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_BASE_URL: Optional[str] = None
    LLM_TIMEOUT: float = 60.0

    # Record defaults
    DEFAULT_CURRENCY: str = "INR"
    DEFAULT_CATEGORY: str = "Other"

    # Capture client
    API_BASE_URL: str = "http://localhost:8000"
    SCAN_TICK_INTERVAL: float = 0.2
    SCAN_SETTLE_DELAY: float = 0.5

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
