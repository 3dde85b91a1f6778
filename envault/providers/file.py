"""
Dotenv file provider for envault.

This module provides a provider that reads KEY=VALUE assignments from a local
dotenv file and applies them to the process environment.

File Format:
    # comments and blank lines are ignored
    DATABASE_HOST=localhost
    export API_URL="https://api.example.com"
    GREETING='hello world'
    DATABASE_URL=postgres://${DATABASE_HOST}/app

A missing file is not an error: the provider simply has nothing to inject.
"""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path

from dotenv.parser import parse_stream
from dotenv.variables import parse_variables

from . import ParseError, Provider, ProviderInfo, ReadError, SetEnvError
from ..environ import set_env_map

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path(".env")


class FileProvider(Provider):
    """
    Dotenv file provider.

    Reads a dotenv file and injects its assignments. Values already present in
    the environment are left untouched.

    Example:
        provider = FileProvider(".env.local")
        await provider.inject()
    """

    info = ProviderInfo(
        name="dotenv",
        description="Local dotenv (KEY=VALUE) file",
    )

    def __init__(self, path: str | Path = "") -> None:
        super().__init__()
        self.path = Path(path) if str(path) else DEFAULT_PATH

    async def inject(self) -> None:
        """
        Read the dotenv file and apply its values.

        Raises:
            ReadError: If the file exists but cannot be read
            ParseError: If the file is not valid dotenv syntax
            SetEnvError: If a value cannot be written to the environment
        """
        logger.debug("dotenv: reading %s", self.path)

        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("dotenv: %s not found", self.path)
            return
        except UnicodeDecodeError as exc:
            raise ParseError(
                f"Dotenv file is not valid UTF-8: {exc}",
                provider=self.info.name,
                source=str(self.path),
            ) from exc
        except OSError as exc:
            raise ReadError(
                f"Error reading dotenv file: {exc}",
                provider=self.info.name,
                source=str(self.path),
            ) from exc

        values = self._parse(content)
        logger.debug("dotenv: loaded %d variables from %s", len(values), self.path)

        try:
            set_env_map(values)
        except SetEnvError as exc:
            raise SetEnvError(
                f"Cannot set env vars provided by dotenv file: {exc.message}",
                provider=self.info.name,
                source=str(self.path),
            ) from exc

        logger.debug("dotenv: finished applying variables from %s", self.path)

    def _parse(self, content: str) -> dict[str, str]:
        """
        Parse dotenv content into a bundle, rejecting malformed lines.

        ``${NAME}`` and ``${NAME:-default}`` references are expanded, looking
        first at assignments earlier in the same file and then at the process
        environment. Single-quoted values are taken literally.
        """
        values: dict[str, str] = {}

        for binding in parse_stream(io.StringIO(content)):
            if binding.error:
                raise ParseError(
                    f"Invalid dotenv syntax on line {binding.original.line}: "
                    f"{binding.original.string.strip()!r}",
                    provider=self.info.name,
                    source=str(self.path),
                )

            # Blank lines and comments
            if binding.key is None:
                continue

            if binding.value is None:
                raise ParseError(
                    f"Missing '=' after {binding.key!r} on line {binding.original.line}",
                    provider=self.info.name,
                    source=str(self.path),
                )

            if _is_single_quoted(binding.original.string):
                values[binding.key] = binding.value
            else:
                env = {**os.environ, **values}
                values[binding.key] = "".join(
                    atom.resolve(env) for atom in parse_variables(binding.value)
                )

        return values


def _is_single_quoted(line: str) -> bool:
    _, _, value = line.partition("=")
    return value.lstrip().startswith("'")
