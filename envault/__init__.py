"""
envault: inject dotenv and Vault secrets into the environment.

Values are resolved from an ordered list of providers and installed into the
process environment without ever overwriting a variable that is already set.

Basic Usage:
    envault --vault-path kvv2/my-app/dev/env -- ./server

Library Usage:
    from envault import FileProvider, VaultProvider, inject

    await inject(FileProvider(".env"), VaultProvider("kvv2/my-app/dev/env"))
"""

import logging

__version__ = "1.0.0"

from .envchain import EnvValue, MissingEnvError, get_env, get_env_or_default
from .environ import set_env_map
from .inject import InjectionError, inject, inject_with_cancellation
from .providers import CancellableProvider, Provider, ProviderError, ProviderInfo
from .providers.file import FileProvider
from .providers.hashicorp import VaultProvider

# Silent until an application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CancellableProvider",
    "EnvValue",
    "FileProvider",
    "InjectionError",
    "MissingEnvError",
    "Provider",
    "ProviderError",
    "ProviderInfo",
    "VaultProvider",
    "get_env",
    "get_env_or_default",
    "inject",
    "inject_with_cancellation",
    "set_env_map",
]
