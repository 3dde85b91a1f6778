"""
Configuration management for envault.

This module loads the optional YAML configuration file that supplies default
values for the command-line wrapper. Command-line flags always take
precedence over values from the file.

Example .envault.yaml:
    dotenv: .env.local
    vault_path: kvv2/my-app/dev/env
    verbose: false
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_DOTENV = ".env"

OPTION_TYPES: dict[str, type] = {
    "dotenv": str,
    "vault_path": str,
    "verbose": bool,
}


class ConfigurationError(Exception):
    """Exception raised for an unusable configuration file."""


def config_search_paths() -> list[Path]:
    """Locations tried, in order, when no config file is named."""
    return [
        Path.cwd() / ".envault.yaml",
        Path.cwd() / ".envault.yml",
        Path.home() / ".config" / "envault.yaml",
        Path.home() / ".envault.yaml",
    ]


@dataclass
class EnvaultConfig:
    """Defaults for the envault command."""

    dotenv: str = DEFAULT_DOTENV
    vault_path: str = ""
    verbose: bool = False

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> EnvaultConfig:
        """
        Read the configuration from `config_path`, or from the first existing
        search location. A missing file gives the defaults.

        Raises:
            ConfigurationError: If the file cannot be read or holds bad options
        """
        if config_path is None:
            path = next((p for p in config_search_paths() if p.is_file()), None)
        else:
            path = Path(config_path)

        if path is None or not path.exists():
            return cls()

        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Cannot load config file {path}: {exc}") from exc

        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        return cls(**{key: _option(key, value, path) for key, value in document.items()})


def _option(key: Any, value: Any, path: Path) -> Any:
    expected = OPTION_TYPES.get(key)
    if expected is None:
        raise ConfigurationError(f"Unknown option '{key}' in config file {path}")

    # `dotenv:` with no value disables the file
    if value is None and expected is str:
        return ""
    if not isinstance(value, expected):
        raise ConfigurationError(
            f"Option '{key}' in config file {path} must be a {expected.__name__}"
        )
    return value
