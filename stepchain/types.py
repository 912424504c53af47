"""Shared value types for the step-chain engine.

This module provides:
- PAUSE: the sentinel a step returns to suspend a traversal
- Deferred: the protocol for promise-like values a step may return
- StepResult: tagged union produced by classifying a step's return value
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from stepchain.chain import Chain


class _PauseSentinel:
    __slots__ = ()

    def __repr__(self) -> str:
        return "PAUSE"

    def __reduce__(self) -> str:
        return "PAUSE"


PAUSE: Final = _PauseSentinel()


@runtime_checkable
class Deferred(Protocol):
    """A value that may not be settled yet.

    The engine only needs to know whether the value is still pending and
    to be told once it settles; resolution itself is the implementer's
    business.
    """

    def is_pending(self) -> bool: ...

    def on_settle(self, callback: Callable[..., Any]) -> Any: ...


def is_pending(value: Any) -> bool:
    """True only for a deferred instance whose ``is_pending()`` is exactly ``True``.

    Classes that happen to define the protocol methods, and stand-ins such
    as mocks that answer every attribute, are treated as plain values.
    """
    if isinstance(value, type) or not isinstance(value, Deferred):
        return False
    return value.is_pending() is True


# ============================================================================
# Step results
# ============================================================================


@dataclass(frozen=True)
class Proceed:
    """Ordinary value: thread it into the next node."""

    value: Any


@dataclass(frozen=True)
class Redirect:
    """Continue the traversal in another chain with the same arguments."""

    chain: Chain


@dataclass(frozen=True)
class Suspend:
    """Hand control back to the caller as a Continuation."""


@dataclass(frozen=True)
class Await:
    """Resume once ``deferred`` settles."""

    deferred: Deferred


StepResult: TypeAlias = Proceed | Redirect | Suspend | Await


__all__ = [
    "PAUSE",
    "Await",
    "Deferred",
    "Proceed",
    "Redirect",
    "StepResult",
    "Suspend",
    "is_pending",
]
