import logging
import os
from enum import Enum
from typing import List

from pydantic_settings import BaseSettings
from starlette.config import Config

logger = logging.getLogger(__name__)

current_file_dir = os.path.dirname(os.path.realpath(__file__))
project_root = os.path.abspath(os.path.join(current_file_dir, "..", "..", "..", ".."))

env_paths = [
    "/code/.env",
    os.path.join(project_root, ".env"),
    "/.env",
]

env_path = next((path for path in env_paths if os.path.isfile(path)), env_paths[0])
logger.info(f"Using environment file at: {env_path}")

config = Config(env_path)


class EnvironmentOption(str, Enum):
    """Environment options for the application."""

    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    LOCAL = "local"


class EnvironmentSettings(BaseSettings):
    """Environment-related settings."""

    ENVIRONMENT: EnvironmentOption = config("ENVIRONMENT", default=EnvironmentOption.DEVELOPMENT, cast=EnvironmentOption)


class DatabaseSettings(BaseSettings):
    """Metadata store settings."""

    SQLITE_URI: str = config("SQLITE_URI", default=os.path.join(project_root, "yuque_mirror.db"))
    SQLITE_ASYNC_PREFIX: str = config("SQLITE_ASYNC_PREFIX", default="sqlite+aiosqlite:///")
    CREATE_TABLES_ON_STARTUP: bool = config("CREATE_TABLES_ON_STARTUP", default=True, cast=bool)
    SQLITE_ECHO: bool = config("SQLITE_ECHO", default=False, cast=bool)

    @property
    def DATABASE_URL(self) -> str:
        """Get the full async database URL."""
        return f"{self.SQLITE_ASYNC_PREFIX}{self.SQLITE_URI}"


class RemoteSettings(BaseSettings):
    """Settings for the Yuque remote provider."""

    YUQUE_HOST: str = config("YUQUE_HOST", default="https://www.yuque.com")
    YUQUE_USER_AGENT: str = config(
        "YUQUE_USER_AGENT",
        default=(
            "Mozilla/5.0 (iPhone; CPU iPhone OS 16_6_1 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Mobile/20G81 YuqueMobileApp/1.0.2 (AppBuild/650 Device/Phone "
            "Locale/zh-cn Theme/light YuqueType/public)"
        ),
    )
    REMOTE_REQUEST_TIMEOUT: float = config("REMOTE_REQUEST_TIMEOUT", default=30.0, cast=float)
    REMOTE_MAX_RETRIES: int = config("REMOTE_MAX_RETRIES", default=3, cast=int)
    REMOTE_RETRY_BASE_DELAY: float = config("REMOTE_RETRY_BASE_DELAY", default=1.0, cast=float)
    NOTES_PAGE_SIZE: int = config("NOTES_PAGE_SIZE", default=50, cast=int)
    NOTES_MAX_OFFSET: int = config("NOTES_MAX_OFFSET", default=5000, cast=int)


class SyncSettings(BaseSettings):
    """Settings for the sync engine and resource pipeline."""

    SYNC_DIRECTORY: str = config("SYNC_DIRECTORY", default=os.path.join(project_root, "mirror"))
    DEFAULT_LINEBREAK: bool = config("DEFAULT_LINEBREAK", default=True, cast=bool)
    DEFAULT_LATEXCODE: bool = config("DEFAULT_LATEXCODE", default=False, cast=bool)

    IMAGE_DOWNLOAD_TIMEOUT: float = config("IMAGE_DOWNLOAD_TIMEOUT", default=30.0, cast=float)
    ATTACHMENT_DOWNLOAD_TIMEOUT: float = config("ATTACHMENT_DOWNLOAD_TIMEOUT", default=60.0, cast=float)
    ATTACHMENT_MAX_BYTES: int = config("ATTACHMENT_MAX_BYTES", default=100 * 1024 * 1024, cast=int)

    SESSION_TTL_HOURS: int = config("SESSION_TTL_HOURS", default=24, cast=int)
    SYNC_SESSION_KEEP: int = config("SYNC_SESSION_KEEP", default=10, cast=int)
    SYNC_HISTORY_KEEP: int = config("SYNC_HISTORY_KEEP", default=50, cast=int)


class CORSSettings(BaseSettings):
    """CORS-related settings."""

    CORS_ENABLED: bool = config("CORS_ENABLED", default=True, cast=bool)
    CORS_ORIGINS: str = config("CORS_ORIGINS", default="*")
    CORS_ALLOW_CREDENTIALS: bool = config("CORS_ALLOW_CREDENTIALS", default=True, cast=bool)

    @property
    def CORS_ORIGINS_LIST(self) -> List[str]:
        """Get CORS origins as a list."""
        if not self.CORS_ORIGINS:
            return ["*"]
        return [x.strip() for x in self.CORS_ORIGINS.split(",") if x.strip()]

    CORS_ALLOW_METHODS: str = config("CORS_ALLOW_METHODS", default="*")
    CORS_ALLOW_HEADERS: str = config("CORS_ALLOW_HEADERS", default="*")


class CompressionSettings(BaseSettings):
    """Compression-related settings."""

    GZIP_ENABLED: bool = config("GZIP_ENABLED", default=True, cast=bool)
    GZIP_MINIMUM_SIZE: int = config("GZIP_MINIMUM_SIZE", default=1000, cast=int)


class APIDocSettings(BaseSettings):
    """API documentation settings."""

    ENABLE_DOCS_IN_PRODUCTION: bool = config("ENABLE_DOCS_IN_PRODUCTION", default=False, cast=bool)
    OPENAPI_PREFIX: str = config("OPENAPI_PREFIX", default="")
    DOCS_URL: str = config("DOCS_URL", default="/docs")
    REDOC_URL: str = config("REDOC_URL", default="/redoc")
    OPENAPI_URL: str = config("OPENAPI_URL", default="/openapi.json")

    API_TITLE: str = config("API_TITLE", default="")
    API_SUMMARY: str = config("API_SUMMARY", default="")
    API_DESCRIPTION: str = config("API_DESCRIPTION", default="")
    API_VERSION: str = config("API_VERSION", default="")


class APISettings(BaseSettings):
    """API-related settings."""

    API_PREFIX: str = "/api"


class AppSettings(BaseSettings):
    """Application-related settings."""

    APP_NAME: str = "Yuque Mirror API"
    APP_DESCRIPTION: str = "Incremental mirror of Yuque knowledge bases to the local filesystem"
    DEBUG: bool = config("DEBUG", default=False, cast=bool)
    VERSION: str = "0.1.0"


class LoggingSettings(BaseSettings):
    """Centralized logging configuration settings."""

    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")
    LOG_FORMAT: str = config("LOG_FORMAT", default="structured")  # "simple", "detailed", "structured", "json"

    LOG_CONSOLE_ENABLED: bool = config("LOG_CONSOLE_ENABLED", default=True, cast=bool)
    LOG_FILE_ENABLED: bool = config("LOG_FILE_ENABLED", default=False, cast=bool)
    LOG_FILE_PATH: str = config("LOG_FILE_PATH", default="logs/yuque_mirror.log")
    LOG_FILE_MAX_SIZE: int = config("LOG_FILE_MAX_SIZE", default=10485760, cast=int)
    LOG_FILE_BACKUP_COUNT: int = config("LOG_FILE_BACKUP_COUNT", default=5, cast=int)

    LOG_SYNC_RUN_ID: bool = config("LOG_SYNC_RUN_ID", default=True, cast=bool)
    LOG_DEVELOPMENT_VERBOSE: bool = config("LOG_DEVELOPMENT_VERBOSE", default=True, cast=bool)
    LOG_PRODUCTION_OPTIMIZE: bool = config("LOG_PRODUCTION_OPTIMIZE", default=True, cast=bool)

    @property
    def LOG_LEVEL_INT(self) -> int:
        """Convert string log level to integer."""
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self.LOG_LEVEL.upper(), logging.INFO)


class Settings(
    EnvironmentSettings,
    DatabaseSettings,
    RemoteSettings,
    SyncSettings,
    CORSSettings,
    CompressionSettings,
    APIDocSettings,
    APISettings,
    AppSettings,
    LoggingSettings,
):
    """Main settings class that combines all setting categories."""

    pass


settings = Settings()


def get_settings() -> Settings:
    """Get application settings.

    Returns:
        The application settings.
    """
    return settings
