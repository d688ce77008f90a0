from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Court Booking Engine'
    VERSION: str = '0.1.0'
    DEBUG: bool = False

    # Logging
    LOG_DIR: Optional[str] = None  # None = stdout only

    # Booking lifecycle
    BOOKING_PAYMENT_WINDOW_SECONDS: int = 900  # 15 minutes to upload a payment proof
    BOOKING_CAS_MAX_RETRIES: int = 5
    BOOKING_STORE_BACKEND: Literal['memory', 'sqlalchemy'] = 'memory'

    # Database (only used by the sqlalchemy backend)
    DATABASE_URL: str = 'sqlite+aiosqlite:///./court_booking.db'
    DATABASE_ECHO: bool = False

    # Notifications
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0

    # Status watching
    STATUS_WATCH_POLL_INTERVAL_SECONDS: float = 3.0
    STATUS_WATCH_BUFFER_SIZE: int = 10

    # Analytics
    ANALYTICS_TIMEZONE: str = 'UTC'
    ANALYTICS_TOP_CUSTOMERS_LIMIT: int = 10
    # owner_id -> venue ids, e.g. ANALYTICS_VENUES_BY_OWNER='{"owner-1": ["venue-1"]}'
    ANALYTICS_VENUES_BY_OWNER: Dict[str, List[str]] = {}

    @field_validator('BOOKING_PAYMENT_WINDOW_SECONDS', 'STATUS_WATCH_BUFFER_SIZE', mode='after')
    @classmethod
    def ensure_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('must be a positive integer')
        return v

    @field_validator('BOOKING_CAS_MAX_RETRIES', 'ANALYTICS_TOP_CUSTOMERS_LIMIT', mode='after')
    @classmethod
    def ensure_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError('must not be negative')
        return v


settings = Settings()
