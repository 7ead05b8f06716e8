"""
Settings read from ``ps2pipeline.toml`` or ``[tool.ps2pipeline]`` in ``pyproject.toml``,
overridden by ``PS2PIPELINE_*`` environment variables.

Only the command line reads this module. Conversions receive their settings
through :class:`~ps2pipeline.models.ConversionOptions`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml

from ps2pipeline.errors.exceptions import ConfigInvalid

__all__ = ["config", "reset_for_testing"]

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "t", "y", "yes")


class _Config:
    """Lazily loaded view over the config file and environment."""

    _ENV_VAR_PREFIX = "PS2PIPELINE_"
    _CONFIG_FILES = ("ps2pipeline.toml", "pyproject.toml")

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path if config_path is not None else self.find_config_file()
        self.file_config = self.load_file_config(self.config_path)
        self.env_config = self.load_env_config()

    def find_config_file(self) -> Path | None:
        """Search the current directory and its parents for a config file."""
        current = Path.cwd()
        for directory in (current, *current.parents):
            for file_name in self._CONFIG_FILES:
                candidate = directory / file_name
                if not candidate.is_file():
                    continue
                if file_name == "pyproject.toml" and "ps2pipeline" not in self._tool_section(candidate):
                    continue
                logger.debug(f"Found configuration file: {candidate}")
                return candidate
        return None

    @staticmethod
    def _tool_section(path: Path) -> dict[str, Any]:
        try:
            data = toml.load(path)
        except toml.TomlDecodeError:
            return {}
        return data.get("tool", {})

    def load_file_config(self, config_path: Path | None) -> dict[str, Any]:
        if config_path is None or not config_path.is_file():
            return {}
        try:
            data = toml.load(config_path)
        except toml.TomlDecodeError as e:
            raise ConfigInvalid(f"Invalid TOML in {config_path}: {e}") from e
        if config_path.name == "pyproject.toml":
            data = data.get("tool", {}).get("ps2pipeline", {})
        if not isinstance(data, dict):
            raise ConfigInvalid(f"Expected a table of settings in {config_path}")
        return data

    def load_env_config(self) -> dict[str, str]:
        settings = {}
        for key, value in os.environ.items():
            if key.startswith(self._ENV_VAR_PREFIX):
                settings[key[len(self._ENV_VAR_PREFIX) :].lower()] = value
        return settings

    def _get_str(self, key: str) -> str | None:
        if key in self.env_config:
            return self.env_config[key]
        value = self.file_config.get(key)
        return None if value is None else str(value)

    def _get_bool(self, key: str) -> bool | None:
        if key in self.env_config:
            return self.env_config[key].strip().lower() in _TRUE_VALUES
        value = self.file_config.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        raise ConfigInvalid(f"Setting '{key}' must be true or false, got {value!r}")

    def _get_list(self, key: str) -> list[str] | None:
        """Lists come from TOML arrays, or comma separated environment values."""
        if key in self.env_config:
            return [item.strip() for item in self.env_config[key].split(",") if item.strip()]
        value = self.file_config.get(key)
        if value is None:
            return None
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(item) for item in value]
        raise ConfigInvalid(f"Setting '{key}' must be a list of wildcards, got {value!r}")

    @property
    def build_system(self) -> str | None:
        return self._get_str("build_system")

    @property
    def variable_parameters(self) -> list[str] | None:
        return self._get_list("variable_parameters")

    @property
    def environment_parameters(self) -> list[str] | None:
        return self._get_list("environment_parameters")

    @property
    def unique_parameters(self) -> list[str] | None:
        return self._get_list("unique_parameters")

    @property
    def exclude_parameters(self) -> list[str] | None:
        return self._get_list("exclude_parameters")

    @property
    def pool_vm_image(self) -> str | None:
        return self._get_str("pool_vm_image")

    @property
    def use_system_access_token(self) -> bool | None:
        return self._get_bool("use_system_access_token")

    @property
    def default_parameters(self) -> dict[str, Any]:
        """Only available from the file, as a ``[default_parameters]`` table."""
        value = self.file_config.get("default_parameters", {})
        if not isinstance(value, dict):
            raise ConfigInvalid("'default_parameters' must be a table")
        return value

    @property
    def verbose(self) -> bool | None:
        return self._get_bool("verbose")

    @property
    def quiet(self) -> bool | None:
        return self._get_bool("quiet")


config = _Config()


def reset_for_testing(config_path_override: Path | None = None) -> _Config:
    """Reload settings, e.g. after a test changed the environment or CWD."""
    global config
    config = _Config(config_path=config_path_override)
    return config
