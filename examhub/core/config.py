from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Exam Hub"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./examhub.db"
    TEST_DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False

    # Passive expiry and status sync
    SCHEDULER_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = 30
    STATUS_SYNC_INTERVAL_SECONDS: int = 60
    CAS_MAX_RETRIES: int = 3

    # Session defaults
    DEFAULT_PASSING_SCORE: float = 60.0
    MAX_DURATION_MINUTES: int = 600

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"

settings = Settings()
