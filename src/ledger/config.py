from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        case_sensitive=False,
    )

    # Application
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite+aiosqlite:///./ledger.db"
    db_echo: bool = False
    seed_default_categories: bool = True

    # Imports
    max_upload_size_mb: int = 10

    # Money / amounts
    currency: str = "CAD"
    currency_minor_unit: int = 2


settings = Settings()
