"""Engine configuration read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class EngineConfig:
    """Settings applied to a single traversal.

    Attributes:
        debug: Enable loguru output for the ``stepchain`` package.
        max_bounces: Upper bound on trampoline bounces per traversal, or
            ``None`` for no bound.
    """

    debug: bool = False
    max_bounces: int | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        env = os.environ if environ is None else environ
        debug = env.get("STEPCHAIN_DEBUG", "").lower() in _TRUTHY
        return cls(debug=debug, max_bounces=_parse_limit(env.get("STEPCHAIN_MAX_BOUNCES", "")))


def _parse_limit(raw: str) -> int | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        limit = int(raw)
    except ValueError:
        raise ValueError(f"STEPCHAIN_MAX_BOUNCES must be an integer, got {raw!r}") from None
    if limit < 0:
        raise ValueError(f"STEPCHAIN_MAX_BOUNCES must not be negative, got {limit}")
    return limit or None


__all__ = ["EngineConfig"]
