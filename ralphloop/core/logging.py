"""
Logging configuration for ralphloop.

Provides centralized logging setup with verbosity levels:
- 0 (default): WARNING - errors and warnings only
- 1 (-v):      INFO - loop decisions (iterations, completion, absorbed errors)
- 2 (-vv):     DEBUG - detailed info (costs, result classification)
- 3+ (-vvv):   TRACE - everything (every streamed message)

LoopLoggerAdapter adds the loop label and iteration position to messages.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Optional

# Custom TRACE level (more verbose than DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def trace(self, message, *args, **kwargs):
    """Log at TRACE level."""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


# Add trace method to Logger class
logging.Logger.trace = trace


@dataclass
class LoopContext:
    """Position of a loop run, used as a log prefix."""
    label: Optional[str] = None
    iteration: Optional[int] = None
    max_iterations: Optional[int] = None

    def format_prefix(self) -> str:
        """Format the context as a log prefix.

        Examples:
            [ralph]
            [ralph:3/10]
        """
        if not self.label:
            return ""
        if self.iteration is not None and self.max_iterations:
            return f"[{self.label}:{self.iteration}/{self.max_iterations}]"
        return f"[{self.label}]"


class LoopLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that includes loop position in messages.

    Usage:
        ctx = LoopContext(label="ralph", iteration=1, max_iterations=10)
        logger = LoopLoggerAdapter(get_logger("ralphloop.core.loop"), ctx)
        logger.info("Stop hook fired")  # Logs: [ralph:1/10] Stop hook fired
    """

    def __init__(self, logger: logging.Logger, context: LoopContext):
        super().__init__(logger, {})
        self.context = context

    def process(self, msg, kwargs):
        prefix = self.context.format_prefix()
        if prefix:
            return f"{prefix} {msg}", kwargs
        return msg, kwargs

    def update_context(self, **kwargs):
        """Update context fields, e.g. ``logger.update_context(iteration=2)``."""
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)

    def trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self.log(TRACE, msg, *args, **kwargs)


def setup_logging(verbosity: int = 0, quiet: bool = False) -> logging.Logger:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2=DEBUG, 3+=TRACE
        quiet: If True, suppress all output except errors

    Returns:
        The configured root logger for ralphloop
    """
    if quiet:
        level = logging.ERROR
    elif verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    elif verbosity == 2:
        level = logging.DEBUG
    else:
        level = TRACE

    logger = logging.getLogger("ralphloop")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if verbosity >= 2:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
    elif verbosity == 1:
        formatter = logging.Formatter("[%(levelname)s] %(message)s")
    else:
        formatter = logging.Formatter("%(message)s")

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # At TRACE level, also enable debug for external libs
    if verbosity >= 3:
        logging.getLogger().setLevel(logging.DEBUG)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger for a module, or the root ralphloop logger when name is None."""
    if name is None:
        return logging.getLogger("ralphloop")
    return logging.getLogger(name)


def get_loop_logger(
    name: str,
    label: Optional[str] = "ralph",
    **context_kwargs,
) -> LoopLoggerAdapter:
    """Get a logger carrying loop position context.

    Example:
        logger = get_loop_logger("ralphloop.core.loop", max_iterations=10)
        logger.update_context(iteration=3)
    """
    context = LoopContext(label=label, **context_kwargs)
    return LoopLoggerAdapter(get_logger(name), context)
