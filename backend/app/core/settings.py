"""Application settings loaded from environment / .env file.

Config precedence (highest to lowest):
    1. Environment variables
    2. ``.env`` file in project root
    3. Defaults defined in this module

The operator password is never exposed in ``repr()``, ``str()``, or logs.
"""

from pathlib import Path

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from backend.app.services.auth import OperatorCredentials

# Project root is three levels up from this file (backend/app/core/settings.py)
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DEFAULT_DB_PATH = str(_PROJECT_ROOT / "data" / "hive.db")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
    )

    api_host: str = "127.0.0.1"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Database: SQLite file by default, or any SQLAlchemy URL
    app_db_path: str = _DEFAULT_DB_PATH
    app_database_url: str | None = None

    @property
    def database_url(self) -> str:
        """Connection URL: ``app_database_url`` if set, else SQLite at ``app_db_path``."""
        if self.app_database_url:
            return self.app_database_url
        return f"sqlite:///{self.app_db_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    # The single operator account allowed to mutate posts
    admin_user: str = "admin"
    admin_password: SecretStr = SecretStr("admin")
    auth_realm: str = "Restricted Area"

    max_content_length: int = Field(default=10_000, gt=0)
    recent_limit: int = Field(default=10, gt=0)

    def operator_credentials(self) -> OperatorCredentials:
        """Build the credential value injected into the auth gate."""
        return OperatorCredentials(
            username=self.admin_user,
            password=self.admin_password.get_secret_value(),
            realm=self.auth_realm,
        )

    @model_validator(mode="after")
    def _validate_db_path(self) -> "Settings":
        """Ensure the DB path parent directory exists or can be created."""
        if self.app_database_url:
            return self
        parent = Path(self.app_db_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = (
                f"Cannot create database directory '{parent}': {exc}. "
                f"Set APP_DB_PATH to a writable location."
            )
            raise ValueError(msg) from exc
        return self

    def safe_dump(self) -> dict[str, object]:
        """Return settings dict with secrets masked — safe for logging."""
        return {
            "api_host": self.api_host,
            "api_port": self.api_port,
            "debug": self.debug,
            "log_level": self.log_level,
            "app_db_path": self.app_db_path,
            "is_external_database": bool(self.app_database_url),
            "admin_user": self.admin_user,
            "auth_realm": self.auth_realm,
            "max_content_length": self.max_content_length,
            "recent_limit": self.recent_limit,
        }


settings = Settings()
