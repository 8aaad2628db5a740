"""Configuration system for push-relay.

This module implements the main configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. Provider settings stay a flat
string map here; each push service validates its own keys when it builds a
provider record.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

# Regular expression pattern for environment variable references
# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False


class DispatchConfig(BaseModel):
    """Configuration for push fan-out behavior.

    Bounds the number of concurrent sends per push and the deadlines applied
    to the token exchange and to each individual send.
    """

    max_concurrency: Annotated[
        int | None,
        Field(
            gt=0,
            description="Concurrent sends per push; null launches one task per destination",
        ),
    ] = 16
    token_timeout_seconds: Annotated[
        float,
        Field(
            gt=0,
            description="Deadline for obtaining a bearer token in seconds",
        ),
    ] = 30.0
    send_timeout_seconds: Annotated[
        float,
        Field(
            gt=0,
            description="Deadline for one send in seconds",
        ),
    ] = 15.0
    connection_limit: Annotated[
        int,
        Field(
            ge=0,
            description="Maximum simultaneous HTTP connections, 0 for unlimited",
        ),
    ] = 100


class ProviderEntry(BaseModel):
    """One configured provider account."""

    type: Annotated[
        str,
        Field(
            min_length=1,
            description="Registered push service type identifier",
        ),
    ]
    settings: Annotated[
        dict[str, str],
        Field(
            description="Flat provider settings passed to the push service",
        ),
    ] = {}

    @field_validator("type", mode="after")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("settings", mode="before")
    @classmethod
    def stringify_settings(cls, v: object) -> object:
        """Render scalar YAML values (numbers, booleans) as strings.

        Args:
            v: Raw settings value

        Returns:
            Settings with scalar values converted to ``str``
        """
        if not isinstance(v, dict):
            return v
        return {
            str(key): value if isinstance(value, str) else str(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
            for key, value in v.items()  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
        }


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level configuration container aggregating all configuration sections:
    - application: Application-level settings
    - dispatch: Fan-out width and deadlines
    - providers: Provider accounts keyed by name
    - state_file: Where refreshed credentials are persisted
    """

    application: Annotated[
        ApplicationConfig,
        Field(
            description="Application-level configuration",
        ),
    ] = ApplicationConfig()
    dispatch: Annotated[
        DispatchConfig,
        Field(
            description="Push dispatch configuration",
        ),
    ] = DispatchConfig()
    providers: Annotated[
        dict[str, ProviderEntry],
        Field(
            description="Provider accounts keyed by name",
        ),
    ]
    state_file: Annotated[
        Path | None,
        Field(
            description="YAML file holding cached provider credentials",
        ),
    ] = None

    @field_validator("providers", mode="after")
    @classmethod
    def validate_providers_not_empty(cls, v: dict[str, ProviderEntry]) -> dict[str, ProviderEntry]:
        """Validate that at least one provider is configured.

        Raises:
            ValueError: If no provider is configured
        """
        if not v:
            msg = "At least one push provider must be configured"
            raise ValueError(msg)
        return v

    @field_validator("state_file", mode="after")
    @classmethod
    def validate_state_file_parent_exists(cls, v: Path | None) -> Path | None:
        if v is not None and not v.parent.exists():
            msg = f"State file parent directory does not exist: {v.parent}"
            raise ValueError(msg)
        return v


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails.

    Raised when a referenced environment variable is not set. The message
    names the variable but never includes any secret value.
    """


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Parses ${VARIABLE_NAME} syntax and replaces with environment variable values.
    Supports multiple environment variable references in a single string.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing

    Examples:
        >>> os.environ["PUSH_CLIENT_SECRET"] = "s3cr3t"
        >>> resolve_env_var("${PUSH_CLIENT_SECRET}")
        's3cr3t'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving environment variable
    references in string values. Non-string values are preserved as-is.

    Args:
        data: Dictionary potentially containing environment variable references

    Returns:
        New dictionary with environment variables resolved

    Raises:
        EnvironmentVariableError: If a required environment variable is missing
    """
    result: dict[str, object] = {}

    for key, value in data.items():
        if isinstance(value, str):
            result[key] = resolve_env_var(value)
        elif isinstance(value, dict):
            # YAML data is untyped at load time; validated by Pydantic after resolution
            result[key] = resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
        elif isinstance(value, list):
            resolved_list: list[object] = []
            for item in value:  # pyright: ignore[reportUnknownVariableType]  # YAML list items
                if isinstance(item, str):
                    resolved_list.append(resolve_env_var(item))
                elif isinstance(item, dict):
                    resolved_list.append(resolve_env_vars_in_dict(item))  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
                else:
                    resolved_list.append(item)  # pyright: ignore[reportUnknownArgumentType]  # YAML primitives
            result[key] = resolved_list
        else:
            result[key] = value

    return result


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails.

    This exception provides detailed, actionable error messages for configuration
    issues including file not found, YAML parsing errors, and validation failures.
    """


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate main application configuration from YAML file.

    Loads the main configuration file, resolves environment variables, and
    validates against the MainConfig schema.

    Args:
        config_path: Path to main configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If configuration file cannot be loaded or is invalid

    Examples:
        >>> config = load_main_config(Path("config/push-relay.yaml"))
        >>> sorted(config.providers)
        ['myapp']
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location.\n"
            f"See config/push-relay.example.yaml for the file format."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e

    try:
        config = MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        error_lines = ["Configuration validation failed:", ""]
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            error_lines.append(f"  Field: {field_path}")
            error_lines.append(f"  Error: {error['msg']}")
            error_lines.append(f"  Type: {error['type']}")
            error_lines.append("")

        error_lines.append(f"Configuration file: {config_path}")
        error_lines.append("Please fix the above errors and try again.")

        msg = "\n".join(error_lines)
        raise ConfigurationError(msg) from e

    return config
