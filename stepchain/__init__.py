"""
stepchain - stack-safe chains of steps.

A chain is a singly-linked list of unary steps that can be piped through,
broadcast to, or queried, all driven by a trampoline so chain length never
grows the Python stack. Steps may redirect the traversal into another
chain, pause it, or make it wait on a deferred value.

Example:
    >>> from stepchain import create
    >>> shout = create([lambda s: s + "!", str.upper])
    >>> shout.call("hi")
    'HI!'
"""

from loguru import logger

from stepchain.chain import Chain, create, identity, is_chain, with_receiver
from stepchain.config import EngineConfig
from stepchain.deferred import Deferred, FutureDeferred, when
from stepchain.engine import (
    APPLY,
    CALL,
    DISTRIBUTE,
    DISTRIBUTE_ALL,
    EVERY,
    SOME,
    Continuation,
    Traversal,
    classify,
    iterate,
)
from stepchain.errors import (
    BounceLimitExceeded,
    ContinuationConsumedError,
    InvalidStepError,
    StepChainError,
)
from stepchain.trampoline import Bounce
from stepchain.types import PAUSE, Await, Proceed, Redirect, StepResult, Suspend

if EngineConfig.from_env().debug:
    logger.enable("stepchain")
else:
    logger.disable("stepchain")

__all__ = [
    "APPLY",
    "CALL",
    "DISTRIBUTE",
    "DISTRIBUTE_ALL",
    "EVERY",
    "PAUSE",
    "SOME",
    "Await",
    "Bounce",
    "BounceLimitExceeded",
    "Chain",
    "Continuation",
    "ContinuationConsumedError",
    "Deferred",
    "EngineConfig",
    "FutureDeferred",
    "InvalidStepError",
    "Proceed",
    "Redirect",
    "StepChainError",
    "StepResult",
    "Suspend",
    "Traversal",
    "classify",
    "create",
    "identity",
    "is_chain",
    "iterate",
    "when",
    "with_receiver",
]
