"""
Singly-linked chains of steps.

Every ``Chain`` is one link: a ``step`` callable plus a ``next`` reference.
A link is also the head of the chain that follows it, so several heads may
share one tail. Mutating operations (``insert``, ``remove``, ``pop``,
``shift``, ``unshift``, ``before``) rewrite ``next`` pointers in place and
are therefore visible through every head sharing the mutated link.

Example:
    >>> from stepchain import create
    >>> a = lambda v: f"a{v}"
    >>> b = lambda v: f"b{v}"
    >>> c = lambda v: f"c{v}"
    >>> create([a, b, c]).call(1)
    'abc1'

None of the operations recurse along ``next``; chains of any length are
walked with plain loops.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from stepchain.errors import InvalidStepError
from stepchain.types import PAUSE

if TYPE_CHECKING:
    from stepchain.engine import Continuation

F = TypeVar("F", bound=Callable[..., Any])

RECEIVER_ATTR = "__stepchain_receiver__"

_OMITTED: Any = object()


def identity(*args: Any) -> Any:
    """Default step: the single argument, the argument list, or ``None``."""
    if len(args) == 1:
        return args[0]
    if not args:
        return None
    return list(args)


def with_receiver(func: F) -> F:
    """Mark ``func`` to be called with the receiver as its first argument.

    The receiver is either the one passed to ``call``/``apply``/... or, when
    none was passed, the node executed just before this one.

        @with_receiver
        def add_seed(receiver, value):
            return value + receiver.seed
    """
    setattr(func, RECEIVER_ATTR, True)
    return func


def is_chain(value: Any) -> bool:
    return isinstance(value, Chain)


def _check_step(value: Any) -> Callable[..., Any]:
    if value is None:
        return identity
    if is_chain(value) or not callable(value):
        raise InvalidStepError(value)
    return value


class Chain:
    """A link in a chain of steps."""

    __slots__ = ("step", "next")

    def __init__(self, step: Callable[..., Any] | None = None, next: Chain | None = None) -> None:
        if next is not None and not is_chain(next):
            raise InvalidStepError(next)
        self.step = _check_step(step)
        self.next = next

    def __repr__(self) -> str:
        name = getattr(self.step, "__qualname__", None) or repr(self.step)
        tail = "" if self.next is None else " -> ..."
        return f"Chain({name}{tail})"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_steps(cls, steps: Sequence[Any], next: Chain | None = None) -> Chain:
        """Build a chain by pushing each element of ``steps`` in order.

        The first element ends up nearest the tail and the last becomes the
        returned head. Elements that are chains are linked in as contiguous
        sub-chains; nested lists are built first and then linked in.
        """
        head = next
        for item in steps:
            if isinstance(item, (list, tuple)):
                item = cls.from_steps(item)
            if head is None:
                head = item if is_chain(item) else cls(item)
            else:
                head = head.push(item)
        return head if head is not None else cls()

    def push(self, step: Any) -> Chain:
        """Return a new head running ``step`` before this chain.

        Pushing a chain relinks that chain's tail onto ``self`` and returns
        it; the pushed chain is modified in place.
        """
        if is_chain(step):
            step.tail().next = self
            return step
        return Chain(_check_step(step), self)

    def insert(self, step: Any) -> Chain:
        """Splice ``step`` (or a whole chain) in right after this node.

        Returns the inserted node, or the inserted chain's head.
        """
        if is_chain(step):
            step.tail().next = self.next
            self.next = step
            return step
        node = Chain(_check_step(step), self.next)
        self.next = node
        return node

    add = insert

    def unshift(self, step: Any) -> Chain:
        """Append ``step`` after the current tail; returns the new link."""
        return self.tail().insert(step)

    def before(self, match: Callable[..., Any] | None, step: Any) -> Chain:
        """Insert ``step`` right after the node running ``match``.

        The inserted step therefore runs before whatever followed ``match``.
        Without ``match``, or when no node runs it, ``self`` is the
        insertion point.
        """
        anchor = None if match is None else self.using_step(match)
        return (self if anchor is None else anchor).insert(step)

    def clone(self, step: Any = None, next: Chain | None = None) -> Chain:
        """Copy this link, optionally replacing its step or its next link."""
        return Chain(self.step if step is None else step, self.next if next is None else next)

    # ------------------------------------------------------------------
    # Destructive removal
    # ------------------------------------------------------------------

    def remove(self) -> Chain:
        """Drop the node after this one from the chain; returns ``self``."""
        if self.next is not None:
            self.next = self.next.next
        return self

    def pop(self) -> Chain:
        """Cut the chain after this node; returns ``self``."""
        self.next = None
        return self

    def shift(self) -> Chain | None:
        """Detach and return the tail, or ``None`` for a single node."""
        previous = self.penultimate()
        if previous is None:
            return None
        removed = previous.next
        previous.next = None
        return removed

    def drop(self) -> Chain | None:
        """The chain without its head. Nothing is modified."""
        return self.next

    # ------------------------------------------------------------------
    # Traversal and search
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[Chain]:
        node: Chain | None = self
        while node is not None:
            yield node
            node = node.next

    def steps(self) -> Iterator[Callable[..., Any]]:
        for node in self:
            yield node.step

    def index(self, n: int) -> Chain | None:
        """The node ``n`` links downstream (0 is ``self``)."""
        if n < 0:
            raise ValueError(f"index must not be negative, got {n}")
        node: Chain | None = self
        while n and node is not None:
            node = node.next
            n -= 1
        return node

    def tail(self) -> Chain:
        node = self
        while node.next is not None:
            node = node.next
        return node

    def penultimate(self) -> Chain | None:
        previous = None
        node = self
        while node.next is not None:
            previous = node
            node = node.next
        return previous

    def uses_step(self, step: Any) -> bool:
        return self.step is step

    uses = uses_step

    def using_step(self, step: Any) -> Chain | None:
        """First node, starting here, whose step is ``step``."""
        for node in self:
            if node.step is step:
                return node
        return None

    using = using_step
    search = using_step

    def composed_with(self, step: Any) -> Chain | None:
        """The node immediately before the first node running ``step``."""
        for node in self:
            if node.next is not None and node.next.step is step:
                return node
        return None

    def precedent(self, target: Chain | None = None) -> Chain | None:
        """The node whose next is ``target``; without a target, the tail."""
        for node in self:
            if node.next is target:
                return node
        return None

    def super_precedent(self, target: Chain | None = None) -> Chain | None:
        """The node two links before ``target`` (or before the chain's end)."""
        for node in self:
            if node.next is None:
                return None
            if node.next.next is target:
                return node
        return None

    def precedes(self, target: Chain | None = None) -> bool:
        return self.next is target

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def pause(self) -> Any:
        """The sentinel a step returns to suspend the traversal."""
        return PAUSE

    def call(self, arg: Any = _OMITTED, receiver: Any = None) -> Any | Continuation:
        """Pipe ``arg`` through every step, head to tail."""
        from stepchain.engine import CALL

        return CALL(self, () if arg is _OMITTED else (arg,), receiver)

    def apply(self, args: Sequence[Any] = (), receiver: Any = None) -> Any | Continuation:
        """Like ``call`` but spreads argument lists into each step."""
        from stepchain.engine import APPLY

        return APPLY(self, tuple(args), receiver)

    spread = apply

    def distribute(self, arg: Any = _OMITTED, receiver: Any = None) -> Any | Continuation:
        """Give every step the same ``arg``; returns the last step's value."""
        from stepchain.engine import DISTRIBUTE

        return DISTRIBUTE(self, () if arg is _OMITTED else (arg,), receiver)

    def distribute_all(self, args: Sequence[Any] = (), receiver: Any = None) -> Any | Continuation:
        from stepchain.engine import DISTRIBUTE_ALL

        return DISTRIBUTE_ALL(self, tuple(args), receiver)

    def some(self, arg: Any = _OMITTED, receiver: Any = None) -> bool | Continuation:
        """``True`` as soon as a step returns ``True``, else ``False``."""
        from stepchain.engine import SOME

        return SOME(self, () if arg is _OMITTED else (arg,), receiver)

    def every(self, arg: Any = _OMITTED, receiver: Any = None) -> bool | Continuation:
        """``False`` as soon as a step returns ``False``, else ``True``."""
        from stepchain.engine import EVERY

        return EVERY(self, () if arg is _OMITTED else (arg,), receiver)


def create(step: Any = None, next: Chain | None = None) -> Chain:
    """Build a chain from a step, an existing chain, or a list of either.

    Raises:
        InvalidStepError: If ``step`` is none of those.
    """
    if isinstance(step, (list, tuple)):
        return Chain.from_steps(step, next)
    if is_chain(step):
        return step if next is None else next.push(step)
    return Chain(step, next)


__all__ = [
    "Chain",
    "create",
    "identity",
    "is_chain",
    "with_receiver",
]
