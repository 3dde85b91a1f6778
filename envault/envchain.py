"""
Typed accessors for environment variables.

Once envault has injected its sources, applications read the values back with
`get_env`, which returns an `EnvValue` that can supply a default, insist that
the variable is set, and convert the text to a richer type.

Example:
    port = get_env("PORT").with_default("8080").as_int()
    timeout = get_env("TIMEOUT").with_default("30s").as_duration()
    db_url = get_env("DATABASE_URL").required().as_url()
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from urllib.parse import SplitResult, urlsplit

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_BYTE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "KIB": 1024,
    "M": 1024**2,
    "MB": 1024**2,
    "MIB": 1024**2,
    "G": 1024**3,
    "GB": 1024**3,
    "GIB": 1024**3,
    "T": 1024**4,
    "TB": 1024**4,
    "TIB": 1024**4,
}
_BYTE_SIZE = re.compile(r"^(?P<number>[^A-Za-z]*?)\s*(?P<unit>[A-Za-z]*)$")


class MissingEnvError(KeyError):
    """Raised by `EnvValue.required` when the variable is not set."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"required environment variable {self.key!r} is not set"


@dataclass(frozen=True)
class EnvValue:
    """The result of looking up one environment variable."""

    key: str
    value: str = ""
    ok: bool = False

    def with_default(self, default: str) -> "EnvValue":
        """Use `default` if the variable is unset. An empty value counts as set."""
        if self.ok:
            return self
        return replace(self, value=default)

    def required(self) -> "EnvValue":
        """Raise `MissingEnvError` if the variable is unset."""
        if not self.ok:
            raise MissingEnvError(self.key)
        return self

    def as_str(self) -> str:
        return self.value

    def as_float(self) -> float:
        return float(self.value)

    def as_int(self) -> int:
        return int(self.value)

    def as_bool(self) -> bool:
        if self.value in _TRUE:
            return True
        if self.value in _FALSE:
            return False
        raise ValueError(f"invalid boolean {self.value!r}")

    def as_duration(self) -> timedelta:
        """
        Parse a duration such as ``300ms``, ``1.5h`` or ``2h45m``.

        Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m`` and ``h``.
        A bare ``0`` is accepted; any other number needs a unit.
        Precision is limited to microseconds.
        """
        raw = self.value
        sign = 1
        if raw[:1] in ("-", "+"):
            sign = -1 if raw[0] == "-" else 1
            raw = raw[1:]

        if raw == "0":
            return timedelta(0)
        if not raw:
            raise ValueError(f"invalid duration {self.value!r}")

        total = 0.0
        position = 0
        while position < len(raw):
            match = _DURATION_PART.match(raw, position)
            if not match:
                raise ValueError(f"invalid duration {self.value!r}")
            number, unit = match.groups()
            total += float(number) * _DURATION_UNITS[unit]
            position = match.end()

        return timedelta(seconds=sign * total)

    def as_url(self) -> SplitResult:
        """Parse an absolute URL; a scheme and a host are required."""
        url = urlsplit(self.value)
        if not url.scheme or not url.netloc:
            raise ValueError(f"invalid URL {self.value!r}: expected scheme and host")
        return url

    def as_csv(self) -> list[str]:
        return self.as_list(",")

    def as_list(self, sep: str) -> list[str]:
        """Split on `sep`, trimming items and dropping empty ones."""
        if not sep:
            raise ValueError("separator cannot be empty")
        return [item.strip() for item in self.value.split(sep) if item.strip()]

    def as_datetime(self, fmt: str) -> datetime:
        if not fmt:
            raise ValueError("format cannot be empty")
        return datetime.strptime(self.value, fmt)

    def as_bytes(self) -> int:
        """
        Parse a byte size such as ``512``, ``10KB`` or ``1.5 GiB``.

        Units are binary multiples and case-insensitive.
        """
        raw = self.value.strip()
        if not raw:
            raise ValueError("byte size cannot be empty")

        match = _BYTE_SIZE.match(raw)
        if not match:
            raise ValueError(f"invalid byte size {self.value!r}")

        unit = match.group("unit").upper()
        if unit not in _BYTE_UNITS:
            raise ValueError(f"unsupported byte unit {unit!r}")

        number = float(match.group("number"))
        if number < 0:
            raise ValueError("byte size cannot be negative")

        return int(number * _BYTE_UNITS[unit])

    def as_map(self, kv_sep: str = "=", entry_sep: str = ",") -> dict[str, str]:
        """Parse ``k1=v1,k2=v2`` style values."""
        if not kv_sep or not entry_sep:
            raise ValueError("separators cannot be empty")
        if not self.value.strip():
            return {}

        result: dict[str, str] = {}
        for entry in self.value.split(entry_sep):
            key, found, val = entry.partition(kv_sep)
            if not found:
                raise ValueError(f"invalid map entry {entry.strip()!r}")
            if not key.strip():
                raise ValueError(f"invalid map entry {entry.strip()!r}: empty key")
            result[key.strip()] = val.strip()

        return result

    def as_enum(self, *choices: str) -> str:
        if not choices:
            raise ValueError("enum options cannot be empty")
        if self.value not in choices:
            raise ValueError(f"value {self.value!r} is not one of {list(choices)}")
        return self.value


def get_env(key: str) -> EnvValue:
    """Look up `key` in the process environment."""
    if key in os.environ:
        return EnvValue(key=key, value=os.environ[key], ok=True)
    return EnvValue(key=key)


def get_env_or_default(key: str, default: str) -> str:
    """Return the variable's value, or `default` when it is unset."""
    return get_env(key).with_default(default).as_str()
