from __future__ import annotations

from typing import Any


class StepChainError(Exception):
    """Base class for errors raised by the step-chain engine itself."""


class InvalidStepError(StepChainError, TypeError):
    """Raised when a chain is built from something that is not a step.

    A step is any callable. Chains, ``None`` (the identity step) and, for
    ``create``, lists or tuples of those are accepted too.
    """

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(
            f"Expected a callable step, a Chain, or a list of them; got {type(value).__name__}: {value!r}"
        )


class BounceLimitExceeded(StepChainError, RuntimeError):
    """Raised when a traversal runs for more bounces than its config allows.

    Chains are acyclic, so hitting the limit usually means a node was linked
    back into its own upstream.
    """

    def __init__(self, limit: int, strategy: str) -> None:
        self.limit = limit
        self.strategy = strategy
        super().__init__(
            f"{strategy} exceeded {limit} bounces\n"
            f"Hint: check for a cycle, or raise STEPCHAIN_MAX_BOUNCES"
        )


class ContinuationConsumedError(StepChainError, RuntimeError):
    """Raised when a continuation waiting on a deferred is resumed twice.

    Such a continuation resumes once: either through ``run()`` or when the
    deferred settles, whichever comes first.
    """

    def __init__(self, continuation: Any) -> None:
        self.continuation = continuation
        super().__init__(
            f"{continuation!r} was already resumed\n"
            f"Hint: read its outcome instead of running it again"
        )


__all__ = [
    "BounceLimitExceeded",
    "ContinuationConsumedError",
    "InvalidStepError",
    "StepChainError",
]
