"""
Provider interface and error kinds for envault.

This module defines the base provider interface that every secret source must
implement, the optional cancellation-aware extension of it, and the errors a
provider raises when an injection fails.

Usage:
    from envault.providers import Provider, ProviderInfo

    class MyProvider(Provider):
        info = ProviderInfo(name="my_provider", description="My custom source")

        async def inject(self) -> None:
            values = ...  # fetch the bundle
            set_env_map(values)
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderInfo:
    """Metadata about a provider."""

    name: str
    description: str


class Provider(ABC):
    """
    Base class for all secret providers.

    A provider fetches one bundle of key/value pairs from its source and
    applies it to the process environment through `envault.environ.set_env_map`,
    as a single unit. Keys that are already set are never overwritten.

    To create a custom provider:
    1. Inherit from Provider
    2. Set the `info` class attribute with provider metadata
    3. Implement the `inject` method

    Providers are constructed once per run and discarded after `inject`
    returns; they keep no state between runs.
    """

    info: ProviderInfo

    @abstractmethod
    async def inject(self) -> None:
        """
        Fetch this provider's bundle and apply it to the environment.

        Raises:
            ProviderError: Describing the first failure encountered
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.info.name}>"


class CancellableProvider(Provider):
    """
    A provider that can observe a cancellation signal.

    The orchestrator checks for this capability with ``isinstance`` and falls
    back to plain `Provider.inject` for providers that do not have it.
    """

    @abstractmethod
    async def inject_with_cancellation(self, signal: asyncio.Event | None) -> None:
        """
        Same as `inject`, but abort when `signal` is set.

        Args:
            signal: Cancellation signal; ``None`` means the call cannot be cancelled

        Raises:
            InjectionCancelledError: If `signal` is set before or during the call
            ProviderError: For any other failure
        """
        ...


class ProviderError(Exception):
    """Base exception for provider-related errors."""

    def __init__(self, message: str, provider: str | None = None, source: str | None = None):
        self.message = message
        self.provider = provider
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.insert(0, f"[{self.provider}]")
        if self.source:
            parts.append(f"(source: {self.source})")
        return " ".join(parts)


class MissingAddressError(ProviderError):
    """No secret-store address could be discovered."""


class MissingTokenError(ProviderError):
    """An address is set but no token was found."""


class MissingPathError(ProviderError):
    """An address is set but no secret path was given."""


class InvalidAddressError(ProviderError):
    """The secret-store address is not a usable URL."""


class RequestError(ProviderError):
    """The request failed at the transport level."""


class InjectionCancelledError(ProviderError):
    """The cancellation signal was set before the provider finished."""


class HTTPStatusError(ProviderError):
    """The secret store answered with a status code of 300 or above."""

    def __init__(
        self,
        status: int,
        reason: str,
        body: str,
        provider: str | None = None,
        source: str | None = None,
    ):
        self.status = status
        self.reason = reason
        self.body = body
        super().__init__(f"{status} {reason}\n{body}", provider=provider, source=source)


class DecodeError(ProviderError):
    """The response body does not have the expected shape."""


class ReadError(ProviderError):
    """A source file exists but could not be read."""


class ParseError(ProviderError):
    """A source document is malformed."""


class SetEnvError(ProviderError):
    """The platform rejected an environment write."""


__all__ = [
    "CancellableProvider",
    "DecodeError",
    "HTTPStatusError",
    "InjectionCancelledError",
    "InvalidAddressError",
    "MissingAddressError",
    "MissingPathError",
    "MissingTokenError",
    "ParseError",
    "Provider",
    "ProviderError",
    "ProviderInfo",
    "ReadError",
    "RequestError",
    "SetEnvError",
]
