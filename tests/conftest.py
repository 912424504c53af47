"""
Shared fixtures for stepchain tests.

Provides letter steps (``a``, ``b``, ``c``, ``d``) that prefix their input,
a call recorder, and a loguru capture for log assertions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from loguru import logger


def prefix(letter: str) -> Callable[[Any], str]:
    """Step returning ``letter`` followed by its input."""

    def step(value: Any) -> str:
        return f"{letter}{value}"

    step.__name__ = step.__qualname__ = letter
    return step


class Recorder:
    """Builds steps that log their name and arguments when run."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def step(self, name: str, result: Any = None) -> Callable[..., Any]:
        def record(*args: Any) -> Any:
            self.calls.append((name, args))
            return result

        record.__name__ = record.__qualname__ = name
        return record

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def a() -> Callable[[Any], str]:
    return prefix("a")


@pytest.fixture
def b() -> Callable[[Any], str]:
    return prefix("b")


@pytest.fixture
def c() -> Callable[[Any], str]:
    return prefix("c")


@pytest.fixture
def d() -> Callable[[Any], str]:
    return prefix("d")


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def log_records() -> Iterator[list[dict[str, Any]]]:
    """Capture stepchain's loguru records for the duration of a test."""
    records: list[dict[str, Any]] = []
    logger.enable("stepchain")
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        yield records
    finally:
        logger.remove(handler_id)
        logger.disable("stepchain")
