# perfstore/config.py
from pydantic_settings import BaseSettings
from typing import Optional
from pydantic import Field

class Settings(BaseSettings):
    DATABASE_URL: str = Field("sqlite+aiosqlite:///./perfstore.db")
    SQL_ECHO: bool = Field(False)

    # Pin the schema to an older version (mainly for fixtures). None → latest.
    SCHEMA_VERSION: Optional[int] = None

    LOG_LEVEL: str = Field("INFO")

    DASHBOARD_TOP_N: int = Field(5)
    DASHBOARD_RECENT_N: int = Field(5)
    EMPLOYEE_PAGE_LIMIT: int = Field(50)
    EMPLOYEE_PAGE_MAX: int = Field(500)

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        url = self.DATABASE_URL
        # Ensure aiosqlite is used
        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

settings = Settings()
