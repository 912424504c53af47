"""Stack-safe driving loop.

Each hop of a traversal is returned as a ``Bounce`` instead of being made as
a nested call; ``trampoline`` keeps invoking bounces until something else
comes back. A step may legitimately return a function, so bounces are
recognised by type rather than by callability.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from stepchain.errors import BounceLimitExceeded


@dataclass(frozen=True, slots=True)
class Bounce:
    thunk: Callable[[], Any]


@dataclass
class BounceCounter:
    """Bounces taken by one ``trampoline`` run, kept for logging."""

    count: int = 0


def trampoline(
    result: Any,
    *,
    max_bounces: int | None = None,
    strategy: str = "trampoline",
    counter: BounceCounter | None = None,
) -> Any:
    """Run ``result`` to completion.

    Args:
        result: A ``Bounce`` to drive, or an already terminal value.
        max_bounces: Raise ``BounceLimitExceeded`` after this many bounces.
        strategy: Name used in the limit error.
        counter: Optional counter updated with the number of bounces taken.

    Returns:
        The first value that is not a ``Bounce``.
    """
    bounces = 0
    while isinstance(result, Bounce):
        if max_bounces is not None and bounces >= max_bounces:
            raise BounceLimitExceeded(max_bounces, strategy)
        bounces += 1
        result = result.thunk()
    if counter is not None:
        counter.count += bounces
    return result


__all__ = ["Bounce", "BounceCounter", "trampoline"]
