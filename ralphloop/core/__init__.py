"""Core components for ralphloop."""

from .cancellation import CancelToken
from .classifier import NON_FATAL_MARKER, ResultClassification, classify_result
from .completion import is_complete, promise_tag
from .config import DEFAULT_COMPLETION_PROMISE, DEFAULT_MAX_ITERATIONS, LoopDefaults, load_config
from .cost import CostAccountant
from .logging import get_logger, setup_logging
from .prompts import build_prompt, status_banner

__all__ = [
    "CancelToken",
    "CostAccountant",
    "DEFAULT_COMPLETION_PROMISE",
    "DEFAULT_MAX_ITERATIONS",
    "LoopDefaults",
    "NON_FATAL_MARKER",
    "ResultClassification",
    "build_prompt",
    "classify_result",
    "get_logger",
    "is_complete",
    "load_config",
    "promise_tag",
    "setup_logging",
    "status_banner",
]
