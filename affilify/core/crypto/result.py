"""
Fallback Ladder
===============

Every crypto operation is an ordered list of provider attempts. Each attempt
is captured as an ``Attempt`` (success or failure) instead of letting the
exception travel; ``run_ladder`` returns the first success and logs every
failure it skipped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


class CryptoError(Exception):
    """Base exception for crypto layer errors."""
    pass


class PrimitiveUnavailableError(CryptoError):
    """A primitive is structurally absent in this runtime."""
    pass


class DecryptionError(CryptoError):
    """A tagged ciphertext could not be decrypted by its producing tier."""
    pass


@dataclass(frozen=True, slots=True)
class Step(Generic[T]):
    """One rung of a fallback ladder."""

    provider: str
    call: Callable[[], T]


@dataclass(frozen=True, slots=True)
class Attempt(Generic[T]):
    """
    Outcome of a single provider attempt.

    Attributes:
        provider: Name of the provider that was tried
        value: Result on success
        error: Exception raised on failure
    """

    provider: str
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def __repr__(self) -> str:
        status = "ok" if self.ok else type(self.error).__name__
        return f"Attempt(provider={self.provider!r}, {status})"


def attempt(step: Step[T]) -> Attempt[T]:
    """Run a step, capturing any exception as a failed Attempt."""
    try:
        return Attempt(provider=step.provider, value=step.call())
    except Exception as e:
        return Attempt(provider=step.provider, error=e)


async def attempt_async(step: Step[T]) -> Attempt[T]:
    """Run a blocking step in a worker thread, capturing any exception."""
    try:
        value = await asyncio.to_thread(step.call)
    except Exception as e:
        return Attempt(provider=step.provider, error=e)
    return Attempt(provider=step.provider, value=value)


def _log_failure(logger: Optional[logging.Logger], operation: str, failed: Attempt, remaining: int) -> None:
    if logger is None:
        return
    # Only the exception type is logged; messages may echo inputs
    logger.warning(
        "%s: provider %s failed (%s), %s",
        operation,
        failed.provider,
        type(failed.error).__name__,
        "falling back" if remaining else "no providers left",
        extra={"operation": operation, "provider": failed.provider},
    )


def _no_steps(operation: str) -> Attempt:
    return Attempt(
        provider="none",
        error=PrimitiveUnavailableError(f"{operation}: no provider available"),
    )


def run_ladder(
    operation: str,
    steps: Sequence[Step[T]],
    logger: Optional[logging.Logger] = None,
) -> Attempt[T]:
    """
    Try each step in order and return the first successful Attempt.

    Returns:
        The first successful Attempt, or the last failed one
    """
    result: Attempt[T] = _no_steps(operation)
    for index, step in enumerate(steps):
        result = attempt(step)
        if result.ok:
            return result
        _log_failure(logger, operation, result, len(steps) - index - 1)
    return result


async def run_ladder_async(
    operation: str,
    steps: Sequence[Step[T]],
    logger: Optional[logging.Logger] = None,
) -> Attempt[T]:
    """Async variant of run_ladder; each step runs off the event loop."""
    result: Attempt[T] = _no_steps(operation)
    for index, step in enumerate(steps):
        result = await attempt_async(step)
        if result.ok:
            return result
        _log_failure(logger, operation, result, len(steps) - index - 1)
    return result
