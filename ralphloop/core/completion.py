"""
Completion signal detection.

The agent is told to wrap the completion promise in <promise></promise>
tags when it is done. Only a fully closed tag around the exact token
counts; a truncated tag keeps the loop going.
"""

PROMISE_OPEN = "<promise>"
PROMISE_CLOSE = "</promise>"


def promise_tag(promise: str) -> str:
    """Return the tagged form of a completion promise.

    Example: promise_tag("DONE") -> "<promise>DONE</promise>"
    """
    return f"{PROMISE_OPEN}{promise}{PROMISE_CLOSE}"


def is_complete(text: str, promise: str) -> bool:
    """Check whether agent output contains the tagged completion promise.

    Case-sensitive substring match anywhere in the text.
    """
    if not text:
        return False
    return promise_tag(promise) in text
