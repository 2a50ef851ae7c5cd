import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Database settings
    data_file: str = os.getenv("LIBRARY_DB_FILE", "library_catalog.db")
    db_timeout: float = float(os.getenv("DB_TIMEOUT", "5.0"))

    # Lending rules
    max_loans_per_member: int = int(os.getenv("MAX_LOANS_PER_MEMBER", "3"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Catalog API")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG", "False")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
