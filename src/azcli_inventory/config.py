"""Configuration for azcli-inventory.

Settings Management:
    The module provides both global singleton and context-based settings:

    1. Global singleton (simple cases):
        set_settings(my_settings)
        settings = get_settings()

    2. Context-based (isolated contexts, tests):
        with SettingsContext(my_settings):
            settings = get_settings()  # Returns my_settings

Settings Loading Priority (highest to lowest):
    1. Environment variables (AZINV_* prefix)
    2. Project config (./.azcli_inventory/settings.json)
    3. User config (~/.azcli_inventory/settings.json)
    4. .env file
    5. Default values
"""

import shutil
from contextlib import contextmanager
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Generator, Tuple, Type

from pydantic_settings import (
    BaseSettings as PydanticBaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from azcli_inventory.logging import Loggers
from azcli_inventory.settings_mixins import (
    AppSettingsMixin,
    CLISettingsMixin,
    FetchSettingsMixin,
    ProviderSettingsMixin,
)

__all__ = [
    "Settings",
    "SettingsContext",
    "SettingsValidationError",
    "get_settings",
    "set_settings",
    "set_context_settings",
    "get_context_settings",
    "validate_settings",
    "reload_settings",
]

logger = Loggers.config()


def _get_json_config_source(
    settings_cls: Type[PydanticBaseSettings],
    json_file: Path,
) -> PydanticBaseSettingsSource | None:
    """Create a JSON config source if the file exists.

    Args:
        settings_cls: The settings class
        json_file: Path to JSON config file

    Returns:
        JsonConfigSettingsSource if file exists, None otherwise
    """
    if not json_file.exists():
        return None

    from pydantic_settings import JsonConfigSettingsSource

    return JsonConfigSettingsSource(settings_cls, json_file=json_file)


class Settings(
    ProviderSettingsMixin,
    FetchSettingsMixin,
    AppSettingsMixin,
    CLISettingsMixin,
    PydanticBaseSettings,
):
    """Settings for azcli-inventory.

    Settings are loaded from (in order of precedence):
    1. Environment variables (AZINV_ prefix)
    2. Project config (./.azcli_inventory/settings.json)
    3. User config (~/.azcli_inventory/settings.json)
    4. .env file
    5. Default values

    Mixins provide organized settings:
    - ProviderSettingsMixin: CLI tool, timeouts, probe markers
    - FetchSettingsMixin: Permission filter, concurrency policy
    - AppSettingsMixin: Application identity and disk layout
    - CLISettingsMixin: Logging and activity log
    """

    model_config = SettingsConfigDict(
        env_prefix="AZINV_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[PydanticBaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources for layered JSON configuration.

        Note: JSON sources are only included if the files exist.
        """
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
        ]

        app_name = "azcli_inventory"
        if "app_name" in cls.model_fields:
            field_info = cls.model_fields["app_name"]
            if field_info.default:
                app_name = field_info.default

        project_json = _get_json_config_source(
            settings_cls,
            Path.cwd() / f".{app_name}" / "settings.json",
        )
        if project_json:
            sources.append(project_json)

        user_json = _get_json_config_source(
            settings_cls,
            Path.home() / f".{app_name}" / "settings.json",
        )
        if user_json:
            sources.append(user_json)

        sources.append(dotenv_settings)

        return tuple(sources)


# Context variable for settings (takes precedence over global singleton)
_settings_context: ContextVar[Settings | None] = ContextVar(
    "settings_context", default=None
)

_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get the current settings instance.

    Settings resolution order:
    1. Context variable (set via SettingsContext or set_context_settings)
    2. Global singleton (set via set_settings)
    3. Fresh Settings instance (created on first access)
    """
    context_settings = _settings_context.get()
    if context_settings is not None:
        return context_settings

    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings_instance
    _settings_instance = settings


def set_context_settings(settings: Settings | None) -> Token:
    """Set settings for the current context.

    Args:
        settings: Settings to use in current context, or None to clear

    Returns:
        Token that can be used to reset the context variable.
    """
    return _settings_context.set(settings)


def get_context_settings() -> Settings | None:
    """Get settings from current context (if any)."""
    return _settings_context.get()


@contextmanager
def SettingsContext(settings: Settings) -> Generator[Settings, None, None]:
    """Context manager for isolated settings.

    Example:
        with SettingsContext(test_settings) as s:
            orchestrator = ResourceOrchestrator(runner)  # picks up test_settings
    """
    token = _settings_context.set(settings)
    try:
        yield settings
    finally:
        _settings_context.reset(token)


def reload_settings() -> Settings:
    """Reload settings (clears global singleton and context cache).

    Returns:
        Fresh Settings instance
    """
    global _settings_instance
    _settings_instance = None
    _settings_context.set(None)
    return get_settings()


class SettingsValidationError(Exception):
    """Raised when settings validation fails."""

    pass


def validate_settings(settings: Settings) -> None:
    """Validate settings for runtime use.

    Performs validation that can only be done at runtime:
    - CLI tool availability on PATH
    - Timeout sanity
    - Probe marker configuration

    Raises:
        SettingsValidationError: If validation fails
    """
    errors = []

    if not settings.cli_tool.strip():
        errors.append("No CLI tool configured. Set AZINV_CLI_TOOL.")
    elif shutil.which(settings.cli_tool) is None:
        errors.append(
            f"CLI tool '{settings.cli_tool}' was not found on PATH. "
            "Make sure Azure CLI (az) is installed on your system."
        )

    for name in ("command_timeout", "login_timeout", "probe_timeout"):
        if getattr(settings, name) <= 0:
            errors.append(f"{name} must be positive, got {getattr(settings, name)}")

    if not [marker for marker in settings.authorization_markers if marker.strip()]:
        errors.append("authorization_markers must contain at least one non-empty marker")

    if errors:
        logger.warning("settings_invalid", errors=errors)
        raise SettingsValidationError("\n".join(errors))
