"""
docvault configuration.

Settings are read from one YAML file and validated with pydantic. Sections:
- storage: upload directory, ledger document name, chunk size
- uploads: size ceiling and accepted MIME types
- api: bind address, route prefix, CORS origins, identity header
- logging: passed as-is to logging.config.dictConfig

Any value can be overridden from the environment as DOCVAULT_SECTION__KEY.
Only the stdlib logger is used here, since logging is configured from the
values this module loads.
"""

from __future__ import annotations

import os
import yaml
import logging
from typing import Any, ClassVar
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource


# Use basic logging during config initialization (before custom logger is
# set up)
_basic_logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_MIME_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "image/jpeg",
    "image/png",
]


class StorageSettings(BaseModel):
    """Blob directory and ledger document locations."""
    upload_dir: str = Field(
        default="uploads",
        description="Directory holding uploaded blobs")
    ledger_filename: str = Field(
        default="fileMetadata.json",
        description="Ledger document name, stored inside upload_dir")
    chunk_size: int = Field(
        default=64 * 1024,
        ge=1024,
        le=16 * 1024 * 1024,
        description="Read/write chunk size in bytes")

    @property
    def ledger_path(self) -> str:
        return os.path.join(self.upload_dir, self.ledger_filename)


class UploadSettings(BaseModel):
    """Upload validation rules."""
    max_file_size_mb: int = Field(default=25, ge=1, le=1024)
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES),
        description="Declared MIME types accepted for upload"
    )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


class APISettings(BaseModel):
    """API configuration."""
    host: str = Field(default="0.0.0.0", description="Host for uvicorn")
    port: int = Field(
        default=5000,
        ge=1,
        le=65535,
        description="Port for uvicorn")
    files_prefix: str = Field(
        default="/api/files",
        description="Route prefix for the files router")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"])
    environment: str = Field(default="development")
    identity_header: str = Field(
        default="X-User-Id",
        description="Header carrying the upstream-authenticated identity")


class LoggingSettings(BaseModel):
    """Logging configuration (raw dict for logging.config.dictConfig)."""
    version: int = Field(default=1)
    disable_existing_loggers: bool = Field(default=False)
    formatters: dict[str, Any] = Field(default_factory=dict)
    handlers: dict[str, Any] = Field(default_factory=dict)
    root: dict[str, Any] = Field(default_factory=dict)
    loggers: dict[str, Any] = Field(default_factory=dict)

    # Allow extra fields for logging config flexibility
    model_config = {'extra': 'allow'}


class AppSettings(BaseSettings):
    """
    Main application settings using Pydantic Settings.

    This class automatically:
    - Loads configuration from YAML files
    - Overrides values from environment variables
    - Validates all settings

    Environment variables use the format: DOCVAULT_SECTION__KEY
    Example: DOCVAULT_STORAGE__UPLOAD_DIR=/srv/uploads
    """

    storage: StorageSettings = Field(default_factory=StorageSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="DOCVAULT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Class variable to temporarily store YAML data
    _temp_config_data: ClassVar[dict[str, Any] | None] = None
    _temp_config_path: ClassVar[str | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Customize the sources and their priority for loading settings.

        Priority (highest to lowest):
        1. Environment variables
        2. YAML file data (if loaded via from_yaml)
        3. Init arguments and defaults
        """
        class YamlSettingsSource(PydanticBaseSettingsSource):
            def get_field_value(
                    self, field: Any, field_name: str) -> tuple[Any, str, bool]:
                if cls._temp_config_data and field_name in cls._temp_config_data:
                    return cls._temp_config_data[field_name], field_name, False
                return None, field_name, False

            def __call__(self) -> dict[str, Any]:
                return cls._temp_config_data or {}

        return (
            env_settings,
            YamlSettingsSource(settings_cls),
            init_settings,
        )

    @classmethod
    def from_yaml(cls, config_path: str | None = None) -> 'AppSettings':
        """
        Load configuration from YAML file with fallback search strategy.

        Search order:
        1. DOCVAULT_CONFIG_PATH environment variable (if set)
        2. ./config.yaml (project root)
        3. docvault/config/config.yaml (package location)

        Note: Environment variables (DOCVAULT_*) always override YAML values.

        Args:
            config_path: Explicit path to config file (skips search if provided)

        Returns:
            AppSettings instance

        Raises:
            FileNotFoundError: If no config file is found in any location
            ValueError: If config file has invalid YAML, structure or values
        """
        if config_path is None:
            config_path = cls._find_config_file()

        _basic_logger.info(f"Loading configuration from: {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            _basic_logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}\n"
                f"Tried search paths: {cls._get_search_paths()}"
            )
        except yaml.YAMLError as e:
            _basic_logger.error(f"Invalid YAML in config file: {e}")
            raise ValueError(
                f"Invalid YAML in configuration file {config_path}: {e}")

        if not isinstance(config_data, dict):
            raise ValueError(
                f"Configuration validation failed: {config_path} must contain a mapping")

        cls._temp_config_data = config_data
        cls._temp_config_path = config_path

        try:
            settings = cls()
            _basic_logger.info(
                "Configuration loaded and validated successfully")
            return settings
        except ValidationError as e:
            _basic_logger.error(f"Configuration validation failed: {e}")
            raise ValueError(f"Configuration validation failed:\n{e}")
        finally:
            cls._temp_config_data = None
            cls._temp_config_path = None

    @staticmethod
    def _get_search_paths() -> list[str]:
        """Get list of paths to search for config file."""
        return [
            os.getenv("DOCVAULT_CONFIG_PATH", ""),
            "./config.yaml",
            os.path.join(os.path.dirname(__file__), "config.yaml"),
        ]

    @classmethod
    def _find_config_file(cls) -> str:
        """
        Search for config file in multiple locations.

        Raises:
            FileNotFoundError: If no config file is found
        """
        search_paths = cls._get_search_paths()

        for path in search_paths:
            if path and os.path.isfile(path):
                _basic_logger.debug(f"Found config file at: {path}")
                return path

        error_msg = (
            "No configuration file found. Searched in:\n" +
            "\n".join(f"  - {p}" for p in search_paths if p) +
            "\n\nPlease either:\n"
            "  1. Set DOCVAULT_CONFIG_PATH environment variable\n"
            "  2. Place config.yaml in project root"
        )
        _basic_logger.error(error_msg)
        raise FileNotFoundError(error_msg)


class ConfigManager:
    """
    Singleton wrapper for AppSettings.

    Loads settings lazily on first access and exposes the values the rest
    of the application needs as properties.
    """

    _instance: 'ConfigManager' | None = None
    _settings: AppSettings | None = None
    _config_path: str | None = None

    def __init__(self):
        """Initialize ConfigManager. Use get_instance() instead."""
        pass

    @classmethod
    def get_instance(cls) -> 'ConfigManager':
        """Get singleton instance of ConfigManager."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._settings = None
        cls._config_path = None

    def load(self, config_path: str | None = None) -> dict[str, Any]:
        """
        Load configuration from file.

        Args:
            config_path: Optional path to config file

        Returns:
            Configuration as dictionary
        """
        if self._settings is not None and config_path is None:
            return self._settings.model_dump()

        self._config_path = config_path
        self._settings = AppSettings.from_yaml(config_path)

        return self._settings.model_dump()

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            self.load()
        return self._settings

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Config key in dot notation (e.g., "storage.upload_dir")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.settings.model_dump()

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k, default)
                if value is default:
                    break
            else:
                return default

        return value

    def get_config(self) -> dict[str, Any]:
        """Get entire configuration as dictionary."""
        return self.settings.model_dump()

    def get_config_path(self) -> str | None:
        """Get path to loaded configuration file."""
        return self._config_path

    @property
    def upload_dir(self) -> str:
        return self.settings.storage.upload_dir

    @property
    def ledger_path(self) -> str:
        return self.settings.storage.ledger_path

    @property
    def chunk_size(self) -> int:
        return self.settings.storage.chunk_size

    @property
    def max_file_size_bytes(self) -> int:
        return self.settings.uploads.max_file_size_bytes

    @property
    def allowed_mime_types(self) -> list[str]:
        return list(self.settings.uploads.allowed_mime_types)

    @property
    def api_host(self) -> str:
        return self.settings.api.host

    @property
    def api_port(self) -> int:
        return self.settings.api.port

    @property
    def files_prefix(self) -> str:
        return self.settings.api.files_prefix.rstrip("/")

    @property
    def environment(self) -> str:
        return self.settings.api.environment

    @property
    def logging_config(self) -> dict[str, Any]:
        """Get logging configuration."""
        return self.settings.logging.model_dump()


def get_config_manager() -> ConfigManager:
    """
    Get the ConfigManager singleton instance.

    Returns:
        ConfigManager instance
    """
    return ConfigManager.get_instance()


__all__ = [
    'ConfigManager',
    'AppSettings',
    'get_config_manager',
    'StorageSettings',
    'UploadSettings',
    'APISettings',
    'LoggingSettings',
    'DEFAULT_ALLOWED_MIME_TYPES',
]
