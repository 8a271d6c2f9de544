"""
ralphloop - iterative agent work loops

Keeps an agent session working on one task until it emits a completion
promise, using a stop hook to block early exits and reinject the task.
"""

__version__ = "0.1.0"

from .core.cancellation import CancelToken
from .core.loop import IterationOutcome, LoopConfig, RalphLoop

__all__ = ["CancelToken", "IterationOutcome", "LoopConfig", "RalphLoop", "__version__"]
