from pydantic_settings import BaseSettings
from typing import Dict, List
from decimal import Decimal
from functools import lru_cache


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Real Estate Commission Engine"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./commissions.db"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Commission defaults
    DEFAULT_COMMISSION_PERCENT: Decimal = Decimal("100")
    VAT_RATE: Decimal = Decimal("16")  # applied on top of partner shares, display only
    REMAINING_UTILITY_TOLERANCE: Decimal = Decimal("0.01")

    # Historical spellings of a development -> canonical key
    DEVELOPMENT_ALIASES: Dict[str, str] = {
        "qroo": "p. quintana roo",
        "p quintana roo": "p. quintana roo",
        "p.quintana roo": "p. quintana roo",
    }

    # Fixed payees of global roles (role_type -> person name); roles not
    # listed fall back to their display name
    ROLE_PERSON_NAMES: Dict[str, str] = {}

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Sync
    SYNC_BATCH_LIMIT: int = 10000

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
