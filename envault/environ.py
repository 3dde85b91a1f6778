"""
Environment sink for envault.

Every provider applies its bundle through `set_env_map`. The first value
written for a key wins: a key that is already present, whether it came from
the original process environment or from an earlier provider in the same
run, is skipped without error. Provider order therefore decides precedence.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping

from .providers import SetEnvError

logger = logging.getLogger(__name__)


def set_env_map(
    values: Mapping[str, str], environ: MutableMapping[str, str] | None = None
) -> list[str]:
    """
    Apply a bundle to the environment without overwriting existing keys.

    Args:
        values: The key/value pairs to apply
        environ: Target mapping, defaults to ``os.environ``

    Returns:
        The keys that were actually set, in bundle order

    Raises:
        SetEnvError: If the platform rejects a write. Keys set before the
            failing one stay set.
    """
    if environ is None:
        environ = os.environ

    applied: list[str] = []

    for key, value in values.items():
        if key in environ:
            logger.debug("environment variable %s already set", key)
            continue

        try:
            environ[key] = value
        except (ValueError, OSError) as exc:
            raise SetEnvError(f"failed to set {key}: {exc}") from exc

        logger.debug("environment variable %s set", key)
        applied.append(key)

    return applied
