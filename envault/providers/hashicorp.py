"""
HashiCorp Vault provider for envault.

This module provides a provider that reads one KV secret from HashiCorp Vault
and injects every field of it into the process environment.

Configuration (read once, when the provider is constructed):
    VAULT_ADDR: Vault server URL. Without it the provider is disabled and
        fails at inject time.
    VAULT_TOKEN: Vault token, falling back to the contents of ~/.vault-token
    VAULT_NAMESPACE: Optional Vault Enterprise namespace

Secret Path:
    v1/secret/data/my-app        # used as given, relative to VAULT_ADDR
    kvv2/my-app/dev/env          # shorthand for v1/kvv2/data/my-app/dev/env

Fields that are not strings (numbers, booleans, objects, ...) are injected as
their compact JSON text.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import posixpath
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import requests
from hvac.adapters import RawAdapter

from . import (
    CancellableProvider,
    DecodeError,
    HTTPStatusError,
    InjectionCancelledError,
    InvalidAddressError,
    MissingAddressError,
    MissingPathError,
    MissingTokenError,
    ProviderInfo,
    RequestError,
    SetEnvError,
)
from ..environ import set_env_map

logger = logging.getLogger(__name__)

ADDRESS_ENV = "VAULT_ADDR"
TOKEN_ENV = "VAULT_TOKEN"
NAMESPACE_ENV = "VAULT_NAMESPACE"
TOKEN_FILE = ".vault-token"

REQUEST_TIMEOUT = 10

SHORTHAND_PREFIX = "kvv2/"


def normalize_secret_path(address: str, requested: str) -> str:
    """
    Rewrite a shorthand ``kvv2/<path>`` into the KV v2 data API path.

    The ``v1`` segment is left out when the address already ends with it.
    Any other path is returned unchanged, as is a leading slash.

    Example:
        >>> normalize_secret_path("https://vault/base", "kvv2/svc/dev/env")
        'v1/kvv2/data/svc/dev/env'
        >>> normalize_secret_path("https://vault/base/v1", "/kvv2/svc/dev/env")
        '/kvv2/data/svc/dev/env'
    """
    if not requested:
        return requested

    had_slash = requested.startswith("/")
    sanitized = requested[1:] if had_slash else requested
    if not sanitized.startswith(SHORTHAND_PREFIX):
        return requested

    suffix = sanitized[len(SHORTHAND_PREFIX) :]
    base = "v1/kvv2/data"
    if address.rstrip("/").endswith("/v1"):
        base = "kvv2/data"

    rewritten = posixpath.normpath(f"{base}/{suffix}")
    if had_slash:
        return "/" + rewritten
    return rewritten


def flatten_secret(data: dict[str, Any]) -> dict[str, str]:
    """Convert secret fields to strings, serializing non-strings as compact JSON."""
    flat: dict[str, str] = {}

    for key, value in data.items():
        if isinstance(value, str):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, separators=(",", ":"), ensure_ascii=False)

    return flat


def _discover_token() -> str:
    """Read the token from VAULT_TOKEN, then from ~/.vault-token."""
    token = os.environ.get(TOKEN_ENV, "")
    if token:
        return token

    try:
        return (Path.home() / TOKEN_FILE).read_text().strip()
    except (OSError, RuntimeError, ValueError) as exc:
        logger.debug("vault: no usable ~/%s: %s", TOKEN_FILE, exc)
        return ""


class VaultProvider(CancellableProvider):
    """
    HashiCorp Vault provider.

    Fetches a single secret with one GET request and injects all of its
    fields. Connection settings are resolved eagerly at construction; missing
    settings are reported by `inject`, not by the constructor.

    Arguments left as ``None`` are discovered from the environment.

    Example:
        provider = VaultProvider("kvv2/my-app/dev/env")
        await provider.inject()
    """

    info = ProviderInfo(
        name="vault",
        description="HashiCorp Vault KV secret",
    )

    def __init__(
        self,
        path: str = "",
        *,
        address: str | None = None,
        token: str | None = None,
        namespace: str | None = None,
        signal: asyncio.Event | None = None,
    ) -> None:
        super().__init__()
        self.raw_path = path
        self.address = os.environ.get(ADDRESS_ENV, "") if address is None else address
        self.token = ""
        self.path = ""
        self.namespace = ""
        self.signal = signal

        # Without an address the provider stays disabled
        if not self.address:
            return

        self.token = _discover_token() if token is None else token
        self.path = normalize_secret_path(self.address, path)
        self.namespace = os.environ.get(NAMESPACE_ENV, "") if namespace is None else namespace

    @property
    def enabled(self) -> bool:
        """Whether an address was discovered."""
        return bool(self.address)

    async def inject(self) -> None:
        """Fetch the secret and apply it, observing the construction-time signal."""
        await self.inject_with_cancellation(self.signal)

    async def inject_with_cancellation(self, signal: asyncio.Event | None) -> None:
        """
        Fetch the secret and apply it to the environment.

        Args:
            signal: When set before or during the request, the injection is abandoned

        Raises:
            InjectionCancelledError: If `signal` is set before the response arrives
            MissingAddressError, MissingTokenError, MissingPathError: If not configured
            InvalidAddressError: If VAULT_ADDR is not a URL
            RequestError: If the request fails at the transport level
            HTTPStatusError: If Vault answers with a status of 300 or above
            DecodeError: If the response is not a KV v2 secret
            SetEnvError: If a value cannot be written to the environment
        """
        if signal is not None and signal.is_set():
            raise InjectionCancelledError(
                "Injection cancelled before the request was sent",
                provider=self.info.name,
            )

        logger.debug(
            "vault: starting injection (addr=%r, path=%r, namespace=%r)",
            self.address,
            self.path,
            self.namespace,
        )

        if not self.address:
            raise MissingAddressError(
                f"{ADDRESS_ENV} is required to inject environment variables",
                provider=self.info.name,
            )
        if not self.token:
            raise MissingTokenError(
                f"{ADDRESS_ENV} set but no token found ({TOKEN_ENV} or ~/{TOKEN_FILE})",
                provider=self.info.name,
            )
        if not self.path:
            raise MissingPathError(
                f"{ADDRESS_ENV} set but no secret path provided",
                provider=self.info.name,
            )
        self._check_address()

        adapter = RawAdapter(
            base_uri=self.address,
            token=self.token,
            namespace=self.namespace or None,
            timeout=REQUEST_TIMEOUT,
        )
        url = adapter.urljoin(self.address, self.path)
        logger.debug("vault: requesting %s", url)

        try:
            response = await self._send(adapter, url, signal)
        finally:
            adapter.session.close()

        if response.status_code >= 300:
            raise HTTPStatusError(
                response.status_code,
                response.reason,
                response.text,
                provider=self.info.name,
                source=url,
            )

        values = flatten_secret(self._decode(response.text, url))
        logger.debug("vault: received %d variables from %s", len(values), url)

        try:
            set_env_map(values)
        except SetEnvError as exc:
            raise SetEnvError(
                f"Cannot set env vars provided by vault: {exc.message}",
                provider=self.info.name,
                source=url,
            ) from exc

        logger.debug("vault: finished applying variables from %s", url)

    def _check_address(self) -> None:
        """Ensure the address is a URL with a scheme and a host."""
        try:
            parts = urlsplit(self.address)
            parts.port  # raises ValueError for a malformed port
        except ValueError as exc:
            raise InvalidAddressError(
                f"Invalid {ADDRESS_ENV} {self.address!r}: {exc}",
                provider=self.info.name,
            ) from exc

        if not parts.scheme or not parts.netloc:
            raise InvalidAddressError(
                f"Invalid {ADDRESS_ENV} {self.address!r}: expected scheme and host",
                provider=self.info.name,
            )

    async def _send(
        self, adapter: RawAdapter, url: str, signal: asyncio.Event | None
    ) -> requests.Response:
        """Run the blocking GET in a worker thread, racing it against `signal`."""
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="envault-vault")

        try:
            request = loop.run_in_executor(
                executor, functools.partial(adapter.get, self.path, raise_exception=False)
            )
            if signal is None:
                return await request

            waiter = asyncio.ensure_future(signal.wait())
            try:
                done, _ = await asyncio.wait(
                    {request, waiter}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                waiter.cancel()

            if request not in done:
                request.cancel()
                raise InjectionCancelledError(
                    "Request cancelled",
                    provider=self.info.name,
                    source=url,
                )

            return request.result()
        except requests.RequestException as exc:
            raise RequestError(
                f"Request failed: {exc}",
                provider=self.info.name,
                source=url,
            ) from exc
        finally:
            # A cancelled request finishes on its own, bounded by the timeout
            executor.shutdown(wait=False)

    def _decode(self, body: str, url: str) -> dict[str, Any]:
        """Extract the ``data.data`` mapping from a KV v2 response body."""
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise DecodeError(
                f"Cannot decode response body: {exc}",
                provider=self.info.name,
                source=url,
            ) from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        secret = data.get("data") if isinstance(data, dict) else None
        if not isinstance(secret, dict):
            raise DecodeError(
                'Cannot decode response body: expected {"data": {"data": {...}}}',
                provider=self.info.name,
                source=url,
            )

        return secret
