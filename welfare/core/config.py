from pydantic_settings import BaseSettings
from typing import List, Optional
from pathlib import Path

# Find .env file - check welfare/ directory first, then project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
APP_ENV = BASE_DIR / "welfare" / ".env"
ROOT_ENV = BASE_DIR / ".env"

env_file = str(APP_ENV) if APP_ENV.exists() else (str(ROOT_ENV) if ROOT_ENV.exists() else ".env")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Ledger operations
    BULK_INSERT_BATCH_SIZE: int = 500
    CURRENCY: str = "KES"

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:8080", "http://127.0.0.1:8080"]
    AUDIT_LOG_DIR: Optional[str] = None

    class Config:
        env_file = env_file
        case_sensitive = True


settings = Settings()

# Derived paths
LOGS_DIR = Path(settings.AUDIT_LOG_DIR) if settings.AUDIT_LOG_DIR else BASE_DIR / "logs"
