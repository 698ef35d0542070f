"""Test configuration loading functionality."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from warden.auth.config.loader import AuthConfigLoader
from warden.auth.exceptions import ConfigurationError

SECRET = "loader-test-secret-0123456789"


def write_config(data=None, text=None) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        if text is not None:
            f.write(text)
        else:
            yaml.dump(data, f)
        return Path(f.name)


class TestAuthConfigLoader:
    """Test AuthConfigLoader functionality."""

    def test_load_valid_config(self):
        config_path = write_config(
            {
                "auth": {
                    "jwt_secret": SECRET,
                    "access_token_ttl": "15m",
                    "refresh_token_ttl": "30d",
                    "issuer": "warden",
                    "lockout": {"max_failed_attempts": 3, "duration": "1h"},
                    "password": {"hasher": "argon2"},
                }
            }
        )

        try:
            settings = AuthConfigLoader.load(config_path)

            assert settings.jwt_secret == SECRET
            assert settings.access_token_ttl == "15m"
            assert settings.issuer == "warden"
            assert settings.lockout.max_failed_attempts == 3
            assert settings.password.hasher == "argon2"
            assert settings.storage.users == "memory"
        finally:
            config_path.unlink()

    def test_load_config_file_not_found(self):
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            AuthConfigLoader.load(Path("/non/existent/config.yaml"))

    def test_load_config_path_is_directory(self):
        with tempfile.TemporaryDirectory() as directory:
            with pytest.raises(ConfigurationError, match="not a file"):
                AuthConfigLoader.load(directory)

    def test_load_config_invalid_yaml(self):
        config_path = write_config(text="invalid: yaml: content: [")

        try:
            with pytest.raises(ConfigurationError, match="Invalid YAML"):
                AuthConfigLoader.load(config_path)
        finally:
            config_path.unlink()

    def test_load_config_empty_file(self):
        config_path = write_config(text="")

        try:
            with pytest.raises(ConfigurationError, match="empty"):
                AuthConfigLoader.load(config_path)
        finally:
            config_path.unlink()

    def test_load_config_missing_auth_section(self):
        config_path = write_config({"site_info": {"name": "Test"}})

        try:
            with pytest.raises(ConfigurationError, match="No 'auth' section"):
                AuthConfigLoader.load(config_path)
        finally:
            config_path.unlink()

    def test_load_config_invalid_values(self):
        config_path = write_config({"auth": {"jwt_secret": "short"}})

        try:
            with pytest.raises(ConfigurationError, match="Invalid auth configuration"):
                AuthConfigLoader.load(config_path)
        finally:
            config_path.unlink()

    def test_load_default_path(self):
        with tempfile.TemporaryDirectory() as directory:
            config_path = Path(directory) / "warden.config.yaml"
            config_path.write_text(yaml.dump({"auth": {"jwt_secret": SECRET}}))

            with patch.object(Path, "cwd", return_value=Path(directory)):
                settings = AuthConfigLoader.load()

            assert settings.jwt_secret == SECRET


class TestEnvironmentSubstitution:
    """Test ${VAR} handling."""

    def test_simple_substitution(self):
        with patch.dict(os.environ, {"WARDEN_SECRET": SECRET}):
            settings = AuthConfigLoader.from_mapping({"jwt_secret": "${WARDEN_SECRET}"})

        assert settings.jwt_secret == SECRET

    def test_default_value(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = AuthConfigLoader.from_mapping(
                {"jwt_secret": SECRET, "access_token_ttl": "${ACCESS_TTL:-2h}"}
            )

        assert settings.access_token_ttl == "2h"

    def test_nested_substitution(self):
        with patch.dict(os.environ, {"LOCKOUT_FOR": "30m"}):
            settings = AuthConfigLoader.from_mapping(
                {"jwt_secret": SECRET, "lockout": {"duration": "${LOCKOUT_FOR}"}}
            )

        assert settings.lockout.duration == "30m"

    def test_missing_variable(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="Environment variable 'NOPE' not set"):
                AuthConfigLoader.from_mapping({"jwt_secret": "${NOPE}"})

    def test_required_variable_message(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="set it in the deployment"):
                AuthConfigLoader.from_mapping(
                    {"jwt_secret": "${JWT_SECRET:?set it in the deployment}"}
                )

    def test_non_string_values_untouched(self):
        processed = AuthConfigLoader._substitute_env_vars({"a": 1, "b": [True, None]})

        assert processed == {"a": 1, "b": [True, None]}
