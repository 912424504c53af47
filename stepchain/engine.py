"""
Trampolined execution of chains.

A ``Traversal`` walks a chain head to tail. At every node it:

1. runs ``action`` (normally: invoke the node's step) to get a value
2. stops with that value if ``stop(value)`` holds
3. classifies the value:
   - a Chain: redirect, keep going from that chain with the same arguments
   - ``PAUSE``: suspend, hand a ``Continuation`` back to the caller
   - a pending ``Deferred``: suspend until it settles, then carry on
   - anything else: feed ``accumulate(value, args)`` to the next node

Each hop is returned to ``trampoline`` as a ``Bounce``; nothing here calls
itself, so chain length never grows the Python stack.

Receivers: an explicit receiver is handed to every step that asks for one
(see ``with_receiver``). Without one, each step gets the node executed just
before it, and the first node gets itself.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Any

from loguru import logger as loguru_logger

from stepchain.chain import RECEIVER_ATTR, Chain, identity, is_chain
from stepchain.config import EngineConfig
from stepchain.errors import ContinuationConsumedError, InvalidStepError
from stepchain.trampoline import Bounce, BounceCounter, trampoline
from stepchain.types import PAUSE, Await, Deferred, Proceed, Redirect, StepResult, Suspend, is_pending

logger = loguru_logger.bind(component="engine")

Args = tuple[Any, ...]
Action = Callable[[Chain, Args, Any], Any]
Accumulate = Callable[[Any, Args], Args]
Stop = Callable[[Any], bool]
Finish = Callable[[Any, bool], Any]

# Marks "no explicit receiver": None is a valid receiver value for a step.
_UNBOUND: Any = object()


# ============================================================================
# Building blocks
# ============================================================================


def invoke(node: Chain, args: Args, receiver: Any) -> Any:
    """Run ``node.step`` with ``args``, prepending the receiver if asked."""
    step = node.step
    if getattr(step, RECEIVER_ATTR, False):
        return step(receiver, *args)
    return step(*args)


def thread_value(value: Any, args: Args) -> Args:
    return (value,)


def as_args(value: Any, args: Args = ()) -> Args:
    """Coerce a step's return value into the next step's argument tuple."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def replay_args(value: Any, args: Args) -> Args:
    return args


def unpack(args: Args) -> Any:
    return args[0] if len(args) == 1 else list(args)


def classify(value: Any) -> StepResult:
    """Tag what a step returned so the traversal knows where to go next."""
    if is_chain(value):
        return Redirect(value)
    if value is PAUSE:
        return Suspend()
    if is_pending(value):
        return Await(value)
    return Proceed(value)


def _receiver_after(node: Chain, bound: Any) -> Any:
    return node if bound is _UNBOUND else bound


# ============================================================================
# Continuation
# ============================================================================


class Continuation:
    """A traversal suspended right after ``node``.

    A paused continuation can be run any number of times; each run resumes
    from the same point. One waiting on a deferred resumes exactly once,
    either when the deferred settles or through an earlier ``run()``.

    Attributes:
        args: Arguments the suspending step received.
        receiver: Receiver the next step will get on resumption.
        awaiting: The deferred being waited on, or ``None`` for a pause.
        resumed: Set once a continuation waiting on a deferred has carried
            on, whether it then finished or raised.
        outcome: What that resumed traversal returned.
        error: The exception that resumed traversal raised, if any. It is
            also re-raised to whoever settled the deferred.
    """

    def __init__(
        self,
        traversal: Traversal,
        node: Chain,
        args: Args,
        bound: Any,
        awaiting: Deferred | None = None,
    ) -> None:
        self._traversal = traversal
        self._node = node
        self._bound = bound
        self._claimed = False
        self.args = args
        self.receiver = _receiver_after(node, bound)
        self.awaiting = awaiting
        self.resumed = False
        self.outcome: Any = None
        self.error: Exception | None = None

    def __repr__(self) -> str:
        state = "awaiting" if self.awaiting is not None else "paused"
        return f"Continuation({self._traversal.name}, {state} after {self._node!r}, args={self.args!r})"

    def run(self, *args: Any, receiver: Any = None) -> Any:
        """Carry on from the suspension point.

        Running a continuation that waits on a deferred claims it: the
        deferred settling afterwards no longer resumes the traversal.

        Args:
            *args: Replacement arguments for the next step; the captured
                ones are replayed when none are given.
            receiver: Explicit receiver for the rest of the traversal.

        Returns:
            The traversal's result, or another Continuation if it suspends
            again.

        Raises:
            ContinuationConsumedError: If this continuation waits on a
                deferred and has already been resumed.
        """
        bound = self._bound if receiver is None else receiver
        resume = partial(self._traversal._resume, self._node, args or self.args, bound)
        if self.awaiting is None:
            return resume()
        self._claim()
        return self._record(resume)

    def value(self) -> Any:
        """The captured argument, or the captured argument list."""
        return unpack(self.args)

    def _claim(self) -> None:
        if self._claimed:
            raise ContinuationConsumedError(self)
        self._claimed = True

    def _record(self, resume: Callable[[], Any]) -> Any:
        try:
            self.outcome = resume()
        except Exception as exc:
            self.error = exc
            raise
        finally:
            self.resumed = True
        return self.outcome

    def _settle(self, *values: Any) -> None:
        if self._claimed:
            logger.debug("{} already resumed; ignoring settlement of {!r}", self._traversal.name, self.awaiting)
            return
        self._claimed = True
        logger.debug("{} resuming after {!r} settled", self._traversal.name, self.awaiting)
        self._record(
            partial(self._traversal._settle, self._node, identity(*values), self.args, self._bound)
        )


# ============================================================================
# Traversal
# ============================================================================


class Traversal:
    """A reusable traversal strategy; call it with a chain to run it."""

    def __init__(
        self,
        action: Action = invoke,
        accumulate: Accumulate = thread_value,
        stop: Stop | None = None,
        finish: Finish | None = None,
        *,
        name: str = "iterate",
        config: EngineConfig | None = None,
    ) -> None:
        self.name = name
        self._action = action
        self._accumulate = accumulate
        self._stop = stop
        self._finish_with = finish
        self._config = config

    def __repr__(self) -> str:
        return f"Traversal({self.name})"

    def __call__(self, node: Chain, args: Args = (), receiver: Any = None) -> Any:
        if not is_chain(node):
            raise InvalidStepError(node)
        bound = _UNBOUND if receiver is None else receiver
        first = node if receiver is None else receiver
        logger.debug("{} starting at {!r}", self.name, node)
        return self._drive(Bounce(partial(self._visit, node, tuple(args), first, bound)))

    def _drive(self, start: Any) -> Any:
        config = self._config or EngineConfig.from_env()
        counter = BounceCounter()
        result = trampoline(
            start,
            max_bounces=config.max_bounces,
            strategy=self.name,
            counter=counter,
        )
        if isinstance(result, Continuation):
            logger.debug("{} suspended after {} bounces: {!r}", self.name, counter.count, result)
        else:
            logger.debug("{} finished after {} bounces", self.name, counter.count)
        return result

    def _visit(self, node: Chain, args: Args, receiver: Any, bound: Any) -> Any:
        value = self._action(node, args, receiver)
        return self._handle(node, value, args, bound)

    def _handle(self, node: Chain, value: Any, args: Args, bound: Any) -> Any:
        if self._stop is not None and self._stop(value):
            return self._finish(value, True)

        outcome = classify(value)
        if isinstance(outcome, Redirect):
            logger.debug("{} redirected from {!r} to {!r}", self.name, node, outcome.chain)
            return Bounce(
                partial(self._visit, outcome.chain, args, _receiver_after(node, bound), bound)
            )
        if isinstance(outcome, Suspend):
            return Continuation(self, node, args, bound)
        if isinstance(outcome, Await):
            k = Continuation(self, node, args, bound, awaiting=outcome.deferred)
            outcome.deferred.on_settle(k._settle)
            return k
        return self._proceed(node, outcome.value, self._accumulate(outcome.value, args), bound)

    def _proceed(self, node: Chain, value: Any, args: Args, bound: Any) -> Any:
        if node.next is None:
            return self._finish(value, False)
        return Bounce(partial(self._visit, node.next, args, _receiver_after(node, bound), bound))

    def _finish(self, value: Any, stopped: bool) -> Any:
        if self._finish_with is None:
            return value
        return self._finish_with(value, stopped)

    def _resume(self, node: Chain, args: Args, bound: Any) -> Any:
        args = tuple(args)
        return self._drive(self._proceed(node, unpack(args), args, bound))

    def _settle(self, node: Chain, value: Any, args: Args, bound: Any) -> Any:
        # The settled value stands in for what the step returned.
        return self._drive(self._handle(node, value, args, bound))


def iterate(
    action: Action = invoke,
    accumulate: Accumulate = thread_value,
    stop: Stop | None = None,
    finish: Finish | None = None,
    *,
    name: str = "iterate",
    config: EngineConfig | None = None,
) -> Traversal:
    """Build a traversal from its three hooks.

    Args:
        action: ``action(node, args, receiver)`` produces a node's value.
        accumulate: ``accumulate(value, args)`` gives the next node's args.
        stop: Short-circuit predicate on a node's value.
        finish: ``finish(value, stopped)`` maps the final value to the result.
        name: Label used in logs and errors.
        config: Fixed config; read from the environment per run otherwise.
    """
    return Traversal(action, accumulate, stop, finish, name=name, config=config)


def _is_true(value: Any) -> bool:
    return value is True


def _is_false(value: Any) -> bool:
    return value is False


CALL = iterate(name="call")
APPLY = iterate(accumulate=as_args, name="apply")
DISTRIBUTE = iterate(accumulate=replay_args, name="distribute")
DISTRIBUTE_ALL = iterate(accumulate=replay_args, name="distribute_all")
SOME = iterate(
    accumulate=replay_args,
    stop=_is_true,
    finish=lambda value, stopped: stopped,
    name="some",
)
EVERY = iterate(
    accumulate=replay_args,
    stop=_is_false,
    finish=lambda value, stopped: not stopped,
    name="every",
)


__all__ = [
    "APPLY",
    "CALL",
    "DISTRIBUTE",
    "DISTRIBUTE_ALL",
    "EVERY",
    "SOME",
    "Continuation",
    "Traversal",
    "as_args",
    "classify",
    "invoke",
    "iterate",
    "replay_args",
    "thread_value",
    "unpack",
]
