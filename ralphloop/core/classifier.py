"""
Classification of session result notifications.

A result with an error status fails the iteration unless every error
string carries the NON-FATAL marker. Marked errors are recoverable
session conditions (lock contention in a shared workspace, for example)
and must not abort a task that is otherwise progressing.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from .exceptions import SessionResultError

NON_FATAL_MARKER = "NON-FATAL"

ERROR_STATUS = "error"
ERROR_SUBTYPE_PREFIX = "error"


@dataclass(frozen=True)
class ResultClassification:
    """Outcome of classifying one result notification.

    Attributes:
        failed: Whether the iteration counts as failed
        message: Combined fatal message (None on success)
        subtype: Subtype of the classified result
        fatal_errors: Error strings without the non-fatal marker
        absorbed: Error strings that carried the non-fatal marker
    """
    failed: bool
    message: Optional[str] = None
    subtype: str = ""
    fatal_errors: tuple[str, ...] = ()
    absorbed: tuple[str, ...] = field(default_factory=tuple)

    def to_error(self) -> Optional[SessionResultError]:
        """Build the run error for a failed classification."""
        if not self.failed:
            return None
        return SessionResultError(
            message=self.message or "",
            subtype=self.subtype,
            errors=list(self.fatal_errors),
            absorbed=list(self.absorbed),
        )


def is_error_result(status: str, subtype: str) -> bool:
    """Check the status/subtype pair for an error indication."""
    return status == ERROR_STATUS or (subtype or "").startswith(ERROR_SUBTYPE_PREFIX)


def classify_result(
    status: str,
    subtype: str,
    errors: Optional[Sequence[str]] = None,
) -> ResultClassification:
    """Decide whether a result notification fails the iteration.

    Args:
        status: Result status ("success" or "error")
        subtype: Result subtype (e.g. "success", "error_during_execution")
        errors: Error strings attached to the result

    Returns:
        ResultClassification
    """
    subtype = subtype or ""
    if not is_error_result(status, subtype):
        return ResultClassification(failed=False, subtype=subtype)

    errors = [str(e) for e in errors or []]
    fatal = tuple(e for e in errors if NON_FATAL_MARKER not in e)
    absorbed = tuple(e for e in errors if NON_FATAL_MARKER in e)

    if fatal:
        return ResultClassification(
            failed=True,
            message="; ".join(fatal),
            subtype=subtype,
            fatal_errors=fatal,
            absorbed=absorbed,
        )

    if not errors:
        return ResultClassification(failed=True, message=subtype or status, subtype=subtype)

    # Every entry is marked non-fatal
    return ResultClassification(failed=False, subtype=subtype, absorbed=absorbed)
