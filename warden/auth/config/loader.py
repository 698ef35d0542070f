"""Configuration loading and processing."""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .schema import AuthSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "warden.config.yaml"


class AuthConfigLoader:
    """Loads and validates authentication configuration."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> AuthSettings:
        """Load the ``auth`` section of a YAML file.

        Args:
            config_path: Path to the YAML file; defaults to
                ``warden.config.yaml`` in the current directory

        Returns:
            Validated AuthSettings instance

        Raises:
            ConfigurationError: If the file is missing, malformed or invalid
        """
        path = cls.validate_config_exists(Path(config_path) if config_path else None)

        try:
            with open(path, "r") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

        if not raw_config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(raw_config, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        auth_config = raw_config.get("auth")
        if not auth_config:
            raise ConfigurationError("No 'auth' section found in configuration")

        settings = cls.from_mapping(auth_config)
        logger.info(f"Loaded auth configuration from {path}")
        return settings

    @classmethod
    def from_mapping(cls, auth_config: dict[str, Any]) -> AuthSettings:
        """Validate an already parsed ``auth`` mapping.

        Environment variable references are substituted first.
        """
        processed_config = cls._substitute_env_vars(auth_config)

        try:
            return AuthSettings(**processed_config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid auth configuration: {e}") from e

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """Recursively substitute environment variables in configuration.

        Supports these patterns:
        - ${VAR_NAME} - simple substitution
        - ${VAR_NAME:-default} - substitution with default value
        - ${VAR_NAME:?error message} - required variable with error message
        """
        if isinstance(config, dict):
            return {key: cls._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return cls._substitute_env_var_string(config)
        else:
            return config

    @classmethod
    def _substitute_env_var_string(cls, value: str) -> str:
        def replace_var(match):
            var_expr = match.group(1)

            if ":-" in var_expr:
                var_name, default_value = var_expr.split(":-", 1)
                return os.getenv(var_name, default_value)

            if ":?" in var_expr:
                var_name, error_msg = var_expr.split(":?", 1)
                env_value = os.getenv(var_name)
                if env_value is None:
                    raise ConfigurationError(
                        f"Required environment variable '{var_name}' not set: {error_msg}"
                    )
                return env_value

            env_value = os.getenv(var_expr)
            if env_value is None:
                raise ConfigurationError(f"Environment variable '{var_expr}' not set")
            return env_value

        return cls.ENV_VAR_PATTERN.sub(replace_var, value)

    @classmethod
    def get_default_config_path(cls) -> Path:
        return Path.cwd() / DEFAULT_CONFIG_FILENAME

    @classmethod
    def validate_config_exists(cls, config_path: Path | None = None) -> Path:
        """Resolve the config path and make sure it is a readable file.

        Raises:
            ConfigurationError: If configuration file doesn't exist
        """
        if config_path is None:
            config_path = cls.get_default_config_path()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        if not config_path.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        return config_path
