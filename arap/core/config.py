from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "AR/AP Ledger API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Accounts receivable and payable ledger engine"

    # Storage: "mongo" or "memory"
    STORE_BACKEND: str = "mongo"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "arap_ledger"

    # Legacy sales/purchasing backend
    BACKEND_API_URL: str = "http://localhost:8080/api"
    BACKEND_TIMEOUT_SECONDS: float = 10.0
    # Send payments to the backend before committing them locally
    FORWARD_PAYMENTS: bool = True

    # Ledger
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 200
    DEFAULT_CREDIT_DAYS: int = 30

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
