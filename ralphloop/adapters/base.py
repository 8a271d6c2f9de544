"""
Base session engine interface.

A session engine runs one continuous agent session: it accepts a
prompt, streams messages, and calls the installed stop hook whenever
the agent tries to end its turn. A blocked decision means the engine
must feed ``reason`` back in as the next user turn and surface
``system_message`` to its observers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable

from ..core.cancellation import CancelToken
from .messages import Message

DECISION_APPROVE = "approve"
DECISION_BLOCK = "block"


@dataclass(frozen=True)
class StopHookInput:
    """Data passed to the stop hook when the session tries to end.

    Attributes:
        session_id: Session identifier
        transcript_path: Path to the session transcript, if the engine keeps one
        cwd: Working directory of the session
        stop_hook_active: True when the session is already continuing
            because of an earlier blocked stop
    """
    session_id: str = ""
    transcript_path: str = ""
    cwd: str = ""
    stop_hook_active: bool = False


@dataclass(frozen=True)
class StopDecision:
    """Stop hook response.

    ``continue_=True`` with ``decision="approve"`` lets the session end;
    ``continue_=False`` with ``decision="block"`` keeps it going with
    ``reason`` as the next input.
    """
    continue_: bool
    decision: str
    reason: str = ""
    system_message: str = ""

    @classmethod
    def approve(cls) -> "StopDecision":
        return cls(continue_=True, decision=DECISION_APPROVE)

    @classmethod
    def block(cls, reason: str, system_message: str = "") -> "StopDecision":
        return cls(
            continue_=False,
            decision=DECISION_BLOCK,
            reason=reason,
            system_message=system_message,
        )

    @property
    def blocked(self) -> bool:
        return self.decision == DECISION_BLOCK


StopHook = Callable[[StopHookInput], Awaitable[StopDecision]]


class SessionEngine(ABC):
    """
    Base class for session engines.

    Engines wrap an agent runtime (a CLI subprocess, an SDK client, a
    scripted replay) behind one streaming call.
    """

    name: str = "base"

    @abstractmethod
    async def open(
        self,
        prompt: str,
        *,
        stop_hook: StopHook,
        cancel: CancelToken,
    ) -> AsyncIterator[Message]:
        """
        Start a session and return its message stream.

        Args:
            prompt: First user turn
            stop_hook: Callback invoked on every termination attempt
            cancel: Token the engine should watch to end the stream early

        Returns:
            Async iterator over session messages, in emission order

        Raises:
            Exception: Any failure to start the session
        """
        pass

    async def close(self) -> None:
        """Release session resources once the stream is drained."""
        pass

    def get_info(self) -> dict:
        """Get engine information."""
        return {"name": self.name}
