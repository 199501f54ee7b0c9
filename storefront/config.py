import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database
    POSTGRES_CONNECTION_STRING: str = os.getenv("POSTGRES_CONNECTION_STRING", "")
    DATABASE_URL_OVERRIDE: str = os.getenv("DATABASE_URL", "")
    DATABASE_ECHO: bool = _as_bool(os.getenv("DATABASE_ECHO", "false"))
    CREATE_TABLES_ON_STARTUP: bool = _as_bool(os.getenv("CREATE_TABLES_ON_STARTUP", "false"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Orders
    STRICT_STATUS_TRANSITIONS: bool = _as_bool(os.getenv("STRICT_STATUS_TRANSITIONS", "false"))
    RECENT_ORDERS_DEFAULT: int = int(os.getenv("RECENT_ORDERS_DEFAULT", "5"))

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for the application"""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        if not self.POSTGRES_CONNECTION_STRING:
            return "sqlite+aiosqlite:///./storefront.db"
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql+asyncpg://")

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Sync URL for Alembic"""
        return (
            self.DATABASE_URL
            .replace("postgresql+asyncpg://", "postgresql://")
            .replace("sqlite+aiosqlite://", "sqlite://")
        )


settings = Settings()
