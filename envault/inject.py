"""
Injection orchestrator for envault.

Runs an ordered list of providers against the process environment. Every
provider runs even when an earlier one fails; all failures are reported
together at the end as a single `InjectionError`.

Example:
    await inject(FileProvider(".env"), VaultProvider("kvv2/my-app/dev/env"))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator

from .providers import CancellableProvider, Provider

_package_logger = logging.getLogger("envault")


async def inject(*providers: Provider, logger: logging.Logger | None = None) -> None:
    """
    Run each provider's `inject` in order.

    Args:
        providers: Providers in precedence order; the first to set a key wins
        logger: Logger for debug tracing, defaults to the silent package logger

    Raises:
        InjectionError: If one or more providers failed
    """
    await _run(providers, logger or _package_logger, lambda provider: provider.inject())


async def inject_with_cancellation(
    signal: asyncio.Event | None,
    *providers: Provider,
    logger: logging.Logger | None = None,
) -> None:
    """
    Run each provider in order, passing `signal` to those that accept it.

    Cancellable providers get `inject_with_cancellation(signal)`; any other
    provider falls back to plain `inject()`.

    Raises:
        InjectionError: If one or more providers failed
    """

    def invoke(provider: Provider) -> Awaitable[None]:
        if isinstance(provider, CancellableProvider):
            return provider.inject_with_cancellation(signal)
        return provider.inject()

    await _run(providers, logger or _package_logger, invoke)


async def _run(
    providers: tuple[Provider, ...],
    logger: logging.Logger,
    invoke: Callable[[Provider], Awaitable[None]],
) -> None:
    errors: list[Exception] = []

    for provider in providers:
        logger.debug("injecting provider %r", provider)
        try:
            await invoke(provider)
        except Exception as exc:
            logger.debug("provider %r returned error: %s", provider, exc)
            errors.append(exc)
        else:
            logger.debug("provider %r finished", provider)

    if errors:
        raise InjectionError(errors)


class InjectionError(Exception):
    """
    Exception raised when one or more providers failed.

    The message lists every individual failure, one per line; the failures
    themselves are available in `errors`, in provider order.
    """

    def __init__(self, errors: list[Exception]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(str(error) for error in self.errors))

    def __iter__(self) -> Iterator[Exception]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)
