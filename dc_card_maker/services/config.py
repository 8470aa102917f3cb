"""Configuration service for managing application settings."""

import json
from pathlib import Path

import structlog

from ..models import AppConfig

log = structlog.stdlib.get_logger()

# GDMenu boot files and the default GDEMU.ini shipped with the package
BUNDLED_DATA_DIRECTORY = Path(__file__).resolve().parent.parent / "data"


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for managing application configuration."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "dc-card-maker" / "config.json"
        log.debug("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file or return default configuration."""
        if not self.config_path.exists():
            log.debug("Configuration file not found, using defaults")
            return self._get_default_config()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data: dict[str, str | None] = json.load(f)

            config = self._dict_to_config(data)
            validation_result = self.validate_config(config)

            if not validation_result.is_valid:
                log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
                return self._get_default_config()

            log.info("Configuration loaded successfully", config_path=str(self.config_path))
            return config

        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            return self._get_default_config()

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.data_directory, Path):
            errors.append("data_directory must be a Path object")
        elif not config.data_directory.is_absolute():
            errors.append("data_directory must be an absolute path")

        if config.tools_directory is not None:
            if not isinstance(config.tools_directory, Path):
                errors.append("tools_directory must be a Path object or None")
            elif not config.tools_directory.is_absolute():
                errors.append("tools_directory must be an absolute path")

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if config.log_level not in valid_log_levels:
            errors.append(f"log_level must be one of: {', '.join(sorted(valid_log_levels))}")

        for setting in ("gditools_command", "cdirip_command", "genisoimage_command", "cdi4dc_command"):
            value = getattr(config, setting)
            if not isinstance(value, str) or not value.strip():
                errors.append(f"{setting} cannot be empty")

        # ISO 9660 volume identifiers are at most 32 d-characters
        if not config.menu_volume_id or len(config.menu_volume_id) > 32:
            errors.append("menu_volume_id must be 1 to 32 characters")

        return ValidationResult(len(errors) == 0, errors)

    def _get_default_config(self) -> AppConfig:
        """Get default configuration."""
        return AppConfig(
            data_directory=BUNDLED_DATA_DIRECTORY,
            log_level="INFO",
        )

    def _dict_to_config(self, data: dict[str, str | None]) -> AppConfig:
        """Convert dictionary to AppConfig, falling back to defaults for absent keys."""
        defaults = self._get_default_config()

        data_directory_raw = data.get("data_directory")
        tools_directory_raw = data.get("tools_directory")

        def text(key: str, default: str) -> str:
            value = data.get(key)
            return str(value) if value is not None else default

        return AppConfig(
            data_directory=Path(str(data_directory_raw)).expanduser() if data_directory_raw else defaults.data_directory,
            log_level=text("log_level", defaults.log_level),
            tools_directory=Path(str(tools_directory_raw)).expanduser() if tools_directory_raw else None,
            gditools_command=text("gditools_command", defaults.gditools_command),
            cdirip_command=text("cdirip_command", defaults.cdirip_command),
            genisoimage_command=text("genisoimage_command", defaults.genisoimage_command),
            cdi4dc_command=text("cdi4dc_command", defaults.cdi4dc_command),
            menu_volume_id=text("menu_volume_id", defaults.menu_volume_id),
        )
