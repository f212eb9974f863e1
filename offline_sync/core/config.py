from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None  # e.g., "sqlite+aiosqlite:///./offline_store.db"
    DB_PATH: str = "./offline_store.db"
    SQL_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Operations queue
    QUEUE_PAGE_SIZE: int = 100  # Rows fetched per keyset page during ordered scans
    STRICT_STATE_TRANSITIONS: bool = False  # Reject updates outside the operation state machine

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite+aiosqlite:///{self.DB_PATH}"

    class Config:
        env_file = ".env"
        extra = "ignore"  # Allow extra fields in .env file

settings = Settings()
