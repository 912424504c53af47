"""
Stack safety for long chains and long redirect sequences.

Every traversal is trampolined and every search is a loop, so none of these
should come anywhere near the interpreter's recursion limit.
"""

from __future__ import annotations

import sys

import pytest

from stepchain import PAUSE, Continuation, Deferred, create

DEPTH = 50_000


def append_x(value: str) -> str:
    return value + "x"


@pytest.fixture
def deep_chain():
    return create([append_x] * DEPTH)


def test_depth_exceeds_recursion_limit() -> None:
    assert DEPTH > sys.getrecursionlimit()


def test_deep_call(deep_chain) -> None:
    assert deep_chain.call("") == "x" * DEPTH


def test_deep_call_from_linked_constructor() -> None:
    chain = None
    for _ in range(DEPTH):
        chain = create(append_x, chain)

    assert chain.call("") == "x" * DEPTH


def test_deep_apply() -> None:
    chain = create([lambda x, y: (y, x)] * DEPTH)

    assert chain.apply([1, 2]) == (1, 2)


def test_deep_distribute() -> None:
    seen = []
    chain = create([seen.append] * DEPTH)

    chain.distribute("same")

    assert len(seen) == DEPTH
    assert set(seen) == {"same"}


def test_deep_distribute_all() -> None:
    totals = [0]

    def add(x, y):
        totals[0] += x + y

    create([add] * DEPTH).distribute_all([1, 2])

    assert totals[0] == 3 * DEPTH


def test_deep_some() -> None:
    chain = create([lambda _: False] * DEPTH)

    assert chain.some(0) is False
    assert create(lambda _: True).push(chain).some(0) is True


def test_deep_every() -> None:
    chain = create([lambda _: True] * DEPTH)

    assert chain.every(0) is True
    assert create(lambda _: False).push(chain).every(0) is False


def test_many_redirects() -> None:
    """A step that redirects into its own chain until a counter runs out."""
    count = [0]

    def loop(value):
        count[0] += 1
        return node if count[0] < DEPTH else value

    node = create(loop)

    assert node.call(7) == 7
    assert count[0] == DEPTH


def test_pause_midway() -> None:
    half = DEPTH // 2
    chain = create([append_x] * half + [lambda _: PAUSE] + [append_x] * half)

    k = chain.call("")

    assert isinstance(k, Continuation)
    assert k.value() == "x" * half
    assert k.run() == "x" * DEPTH


def test_await_at_the_end_of_a_deep_chain() -> None:
    deferred = Deferred()
    chain = create([append_x] * DEPTH + [lambda _: deferred])

    k = chain.call("")
    deferred.resolve("")

    assert k.outcome == "x" * DEPTH


def test_many_deferred_callbacks() -> None:
    seen = []
    deferred = Deferred()
    for _ in range(DEPTH):
        deferred.done(seen.append)

    deferred.resolve(1)

    assert len(seen) == DEPTH


class TestDeepSearch:
    """Search and mutation loop instead of recursing."""

    def test_iteration(self, deep_chain) -> None:
        assert sum(1 for _ in deep_chain) == DEPTH

    def test_index_and_tail(self, deep_chain) -> None:
        tail = deep_chain.tail()

        assert deep_chain.index(DEPTH - 1) is tail
        assert deep_chain.index(DEPTH) is None
        assert deep_chain.penultimate().next is tail
        assert deep_chain.precedent() is tail

    def test_using_step_at_tail(self) -> None:
        def marker(value):
            return value

        chain = create([append_x, marker] + [append_x] * DEPTH)

        assert chain.using_step(marker).step is marker
        assert chain.composed_with(marker).next.step is marker

    def test_unshift_and_shift(self, deep_chain) -> None:
        def last(value):
            return value + "!"

        deep_chain.unshift(last)
        assert deep_chain.call("") == "x" * DEPTH + "!"

        assert deep_chain.shift().step is last
        assert deep_chain.call("") == "x" * DEPTH
