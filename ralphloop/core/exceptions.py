"""
Custom exceptions for ralphloop.

Provides specific exception types with associated exit codes
for the different ways a loop run can fail. None of these abort a
run: the loop controller attaches them to the emitted outcome.
All exceptions support JSON serialization for CI reporting.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional


class ExitCode:
    """Standard exit codes for ralphloop runs."""
    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_CONFIG = 2
    LOOP_BUSY = 3
    SESSION_FAILED = 4
    INCOMPLETE = 5
    CANCELLED = 6
    COST_INTEGRITY = 7


@dataclass
class InvalidConfiguration(Exception):
    """Raised when a loop configuration cannot be normalized.

    Attributes:
        field: Name of the offending configuration field
        reason: Human-readable explanation
    """
    field: str
    reason: str

    def __str__(self) -> str:
        return f"invalid configuration for {self.field}: {self.reason}"

    @property
    def exit_code(self) -> int:
        return ExitCode.INVALID_CONFIG


@dataclass
class LoopAlreadyRunning(Exception):
    """Reported when run() is called on an instance that is already running."""
    message: str = (
        "RalphLoop is already running; use a new instance for concurrent execution"
    )

    def __str__(self) -> str:
        return self.message

    @property
    def exit_code(self) -> int:
        return ExitCode.LOOP_BUSY


@dataclass
class SessionResultError(Exception):
    """A result notification reported a fatal error.

    Attributes:
        message: Combined fatal error text (or the subtype when no detail was given)
        subtype: Result subtype reported by the session
        errors: The fatal (unmarked) error strings
        absorbed: Non-fatal error strings from the same notification
    """
    message: str
    subtype: str = ""
    errors: list[str] = field(default_factory=list)
    absorbed: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"session error: {self.message}"

    @property
    def exit_code(self) -> int:
        return ExitCode.SESSION_FAILED


@dataclass
class LoopCancelled(Exception):
    """The caller cancelled the run, or its deadline passed.

    Attributes:
        reason: Why the run was cancelled
        deadline_exceeded: True when a timeout rather than an explicit cancel fired
    """
    reason: str = "cancelled"
    deadline_exceeded: bool = False

    def __str__(self) -> str:
        if self.deadline_exceeded:
            return f"deadline exceeded: {self.reason}"
        return f"run cancelled: {self.reason}"

    @property
    def exit_code(self) -> int:
        return ExitCode.CANCELLED


@dataclass
class CostRegression(Exception):
    """A session reported a cumulative cost lower than one it reported earlier.

    Attributes:
        previous: Last recorded cumulative cost (USD)
        reported: Newly reported cumulative cost (USD)
    """
    previous: float
    reported: float

    def __str__(self) -> str:
        return (
            f"cumulative cost decreased from ${self.previous:.4f} "
            f"to ${self.reported:.4f}"
        )

    @property
    def exit_code(self) -> int:
        return ExitCode.COST_INTEGRITY


@dataclass
class UnknownMessageType(Exception):
    """Raised when a session message has an unrecognized type field."""
    type: str

    def __str__(self) -> str:
        return f"unknown message type: {self.type}"


def exception_to_json(exc: BaseException, context: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Convert an exception to a JSON-serializable dictionary.

    Args:
        exc: The exception to convert
        context: Optional additional context (task, iteration, etc.)

    Returns:
        JSON-serializable dict with error details
    """
    error_dict: dict[str, Any] = {
        "type": type(exc).__name__,
        "message": str(exc),
    }

    if hasattr(exc, "exit_code"):
        error_dict["exit_code"] = exc.exit_code
    else:
        error_dict["exit_code"] = ExitCode.GENERAL_ERROR

    if isinstance(exc, InvalidConfiguration):
        error_dict["field"] = exc.field
        error_dict["reason"] = exc.reason

    elif isinstance(exc, SessionResultError):
        error_dict["subtype"] = exc.subtype
        error_dict["errors"] = exc.errors
        if exc.absorbed:
            error_dict["absorbed"] = exc.absorbed

    elif isinstance(exc, LoopCancelled):
        error_dict["reason"] = exc.reason
        error_dict["deadline_exceeded"] = exc.deadline_exceeded

    elif isinstance(exc, CostRegression):
        error_dict["previous_cost_usd"] = exc.previous
        error_dict["reported_cost_usd"] = exc.reported

    if context:
        error_dict["context"] = context

    return {"error": error_dict}


def format_json_error(exc: BaseException, context: Optional[dict[str, Any]] = None) -> str:
    """Format an exception as a JSON string."""
    return json.dumps(exception_to_json(exc, context), indent=2, default=str)
