"""Configuration management with pydantic-settings and validation."""

from pydantic_settings import BaseSettings
from pydantic import field_validator


# Fields that must hold a non-blank string
REQUIRED_FIELDS = {
    "database_url",
    "stock_storage_key",
    "history_storage_key",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = "sqlite:///./stockkeeper.db"

    # Storage keys for the two persisted collections
    stock_storage_key: str = "shoppingListDB"
    history_storage_key: str = "shoppingListHistoryDB"

    # First-run behaviour
    seed_example_items: bool = True

    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v):
        """Heroku-style URLs use postgres:// but SQLAlchemy requires postgresql://."""
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator(*REQUIRED_FIELDS, mode="before")
    @classmethod
    def check_not_empty(cls, v, info):
        """Validate that required settings are not blank."""
        if v is None:
            raise ValueError(f"{info.field_name} is not set")
        if isinstance(v, str) and v.strip() == "":
            raise ValueError(f"{info.field_name} is empty")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def get_settings() -> Settings:
    """Load and validate settings from environment.

    Raises:
        ValidationError: If environment variables are present but invalid.
    """
    return Settings()
