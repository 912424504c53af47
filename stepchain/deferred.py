"""
Promise-like values built on chains.

``Deferred`` keeps one chain of callbacks per outcome and broadcasts the
settled values to it with ``distribute_all``. Anything with ``is_pending``
and ``on_settle`` can be returned from a step to make the traversal wait;
``FutureDeferred`` gives an ``asyncio.Future`` that shape.

A callback that raises does not stop the others. Once every callback has
run, the first failure is re-raised to the code that settled the deferred.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Literal

from stepchain.chain import RECEIVER_ATTR, Chain, with_receiver
from stepchain.types import Deferred as DeferredProtocol, is_pending

logger = logging.getLogger(__name__)

DeferredState = Literal["pending", "resolved", "rejected"]

PENDING: DeferredState = "pending"
RESOLVED: DeferredState = "resolved"
REJECTED: DeferredState = "rejected"


def _settled(*values: Any) -> None:
    """Head of every callback chain."""


def _callback(fn: Callable[..., Any], errors: list[Exception]) -> Callable[..., None]:
    # Callback results are discarded: a callback never redirects, pauses or
    # awaits the broadcast. Failures are collected so the rest still run.
    def run(*args: Any) -> None:
        try:
            fn(*args)
        except Exception as exc:
            errors.append(exc)

    if getattr(fn, RECEIVER_ATTR, False):

        @with_receiver
        def bound_step(receiver: Any, *values: Any) -> None:
            run(receiver, *values)

        return bound_step

    def step(*values: Any) -> None:
        run(*values)

    return step


class Deferred:
    """A value that is resolved or rejected at most once."""

    def __init__(
        self,
        done: Callable[..., Any] | None = None,
        fail: Callable[..., Any] | None = None,
    ) -> None:
        self.state: DeferredState = PENDING
        self.values: tuple[Any, ...] = ()
        self._receiver: Any = None
        self._errors: list[Exception] = []
        self._resolve_chain = Chain(_settled)
        self._reject_chain = Chain(_settled)
        if done is not None:
            self.done(done)
        if fail is not None:
            self.fail(fail)

    def __repr__(self) -> str:
        return f"Deferred({self.state})"

    # ------------------------------------------------------------------
    # Settling
    # ------------------------------------------------------------------

    def resolve(self, *values: Any) -> Deferred:
        return self._settle(RESOLVED, values, None)

    def resolve_with(self, receiver: Any, *values: Any) -> Deferred:
        return self._settle(RESOLVED, values, receiver)

    def reject(self, *reasons: Any) -> Deferred:
        return self._settle(REJECTED, reasons, None)

    def reject_with(self, receiver: Any, *reasons: Any) -> Deferred:
        return self._settle(REJECTED, reasons, receiver)

    def _settle(self, state: DeferredState, values: tuple[Any, ...], receiver: Any) -> Deferred:
        if self.state != PENDING:
            logger.debug("Ignoring %s of already %s deferred", state, self.state)
            return self
        self.state = state
        self.values = values
        self._receiver = receiver
        logger.debug("Deferred %s with %d value(s)", state, len(values))
        self._broadcast(self._resolve_chain if state == RESOLVED else self._reject_chain)
        return self

    def _broadcast(self, chain: Chain) -> None:
        """Run every callback in ``chain``, then raise the first failure."""
        start = len(self._errors)
        chain.distribute_all(self.values, self._receiver)
        errors = self._errors[start:]
        del self._errors[start:]
        if not errors:
            return
        first, *rest = errors
        for error in rest:
            logger.warning("Deferred callback also failed: %r", error)
        raise first

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def is_pending(self) -> bool:
        return self.state == PENDING

    def is_resolved(self) -> bool:
        return self.state == RESOLVED

    def is_rejected(self) -> bool:
        return self.state == REJECTED

    def is_complete(self) -> bool:
        return self.state != PENDING

    def inspect(self) -> dict[str, Any]:
        return {"state": self.state}

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def done(self, fn: Callable[..., Any]) -> Deferred:
        """Run ``fn`` with the resolved values, now if already resolved."""
        return self._register(RESOLVED, fn)

    def fail(self, fn: Callable[..., Any]) -> Deferred:
        """Run ``fn`` with the rejection reasons, now if already rejected."""
        return self._register(REJECTED, fn)

    def then(
        self,
        done: Callable[..., Any] | None = None,
        fail: Callable[..., Any] | None = None,
    ) -> Deferred:
        if done is not None:
            self.done(done)
        if fail is not None:
            self.fail(fail)
        return self

    def on_settle(self, callback: Callable[..., Any]) -> Deferred:
        """Run ``callback`` whichever way this deferred settles."""
        return self.then(callback, callback)

    def _register(self, state: DeferredState, fn: Callable[..., Any]) -> Deferred:
        if self.state == state:
            self._broadcast(Chain(_callback(fn, self._errors)))
        elif self.state == PENDING:
            chain = self._resolve_chain if state == RESOLVED else self._reject_chain
            chain.unshift(_callback(fn, self._errors))
        return self


def when(*items: Any) -> Deferred:
    """A deferred resolved once every deferred among ``items`` resolves.

    Callables are called to obtain their item. A rejected deferred, or an
    item that is literally ``False``, rejects the result straight away.
    Items that are neither count as satisfied.
    """
    result = Deferred()
    waiting: list[DeferredProtocol] = []
    for item in items:
        if callable(item):
            item = item()
        if item is False:
            return result.reject()
        if isinstance(item, Deferred):
            if item.is_rejected():
                return result.reject(*item.values)
            if item.is_pending():
                waiting.append(item)
        elif is_pending(item):
            waiting.append(item)

    if not waiting:
        return result.resolve()

    remaining = [len(waiting)]

    def _one_resolved(*values: Any) -> None:
        remaining[0] -= 1
        if remaining[0] == 0:
            result.resolve()

    for item in waiting:
        if isinstance(item, Deferred):
            item.then(_one_resolved, result.reject)
        else:
            item.on_settle(_one_resolved)
    return result


class FutureDeferred:
    """Adapts an ``asyncio.Future`` (or Task) to the deferred protocol.

    ``on_settle`` callbacks run from the event loop once the future is done
    and receive its result, its exception, or ``CancelledError``.
    """

    def __init__(self, future: asyncio.Future[Any]) -> None:
        self.future = future

    def __repr__(self) -> str:
        return f"FutureDeferred({self.future!r})"

    def is_pending(self) -> bool:
        return not self.future.done()

    def on_settle(self, callback: Callable[..., Any]) -> FutureDeferred:
        self.future.add_done_callback(lambda fut: callback(_future_outcome(fut)))
        return self


def _future_outcome(future: asyncio.Future[Any]) -> Any:
    if future.cancelled():
        return asyncio.CancelledError()
    error = future.exception()
    if error is not None:
        return error
    return future.result()


__all__ = [
    "PENDING",
    "REJECTED",
    "RESOLVED",
    "Deferred",
    "FutureDeferred",
    "when",
]
