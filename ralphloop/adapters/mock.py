"""
Scripted session engine for testing and development.

Replays canned turns and drives the stop hook the way a real agent
runtime does: messages for a turn are streamed, then the hook decides
whether the session ends or continues with a reinjected prompt.
"""

import asyncio
import logging
import uuid
from typing import AsyncIterator, Callable, Optional, Sequence, Union

from ..core.cancellation import CancelToken
from .base import SessionEngine, StopDecision, StopHook, StopHookInput
from .messages import AssistantMessage, Message, ResultMessage

logger = logging.getLogger("ralphloop.adapters.mock")

TurnScript = Union[Sequence[Sequence[Message]], Callable[[int, str], Sequence[Message]]]


class ScriptedEngine(SessionEngine):
    """Session engine that replays scripted turns."""

    name = "scripted"

    def __init__(
        self,
        turns: Optional[TurnScript] = None,
        delay: float = 0.0,
        open_error: Optional[Exception] = None,
        session_id: Optional[str] = None,
        cost_per_turn: float = 0.01,
        max_turns: int = 100,
    ):
        """
        Initialize the scripted engine.

        Args:
            turns: Messages per turn (cycled when exhausted), or a callable
                taking (turn_index, prompt) and returning that turn's messages.
                When omitted each turn emits one assistant message and a
                success result with a growing cumulative cost.
            delay: Simulated delay before each message, in seconds
            open_error: Raised from open() to simulate a failed session start
            session_id: Session id reported on default messages and hook input
            cost_per_turn: Cumulative cost increment used by default turns
            max_turns: Hard stop for runaway scripts
        """
        self.turns = turns
        self.delay = delay
        self.open_error = open_error
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.cost_per_turn = cost_per_turn
        self.max_turns = max_turns

        self.opened = 0
        self.closed = False
        self.prompts: list[str] = []
        self.decisions: list[StopDecision] = []
        self.banners: list[str] = []

    async def open(
        self,
        prompt: str,
        *,
        stop_hook: StopHook,
        cancel: CancelToken,
    ) -> AsyncIterator[Message]:
        """Start a scripted session."""
        self.opened += 1
        if self.open_error is not None:
            raise self.open_error
        self.closed = False
        return self._stream(prompt, stop_hook, cancel)

    async def close(self) -> None:
        self.closed = True

    async def _stream(
        self,
        prompt: str,
        stop_hook: StopHook,
        cancel: CancelToken,
    ) -> AsyncIterator[Message]:
        turn = 0
        while turn < self.max_turns:
            if cancel.cancelled:
                logger.debug(f"Session {self.session_id} cancelled before turn {turn + 1}")
                return
            self.prompts.append(prompt)

            for message in self._turn_messages(turn, prompt):
                if self.delay:
                    await asyncio.sleep(self.delay)
                if cancel.cancelled:
                    logger.debug(f"Session {self.session_id} cancelled during turn {turn + 1}")
                    return
                yield message

            decision = await stop_hook(
                StopHookInput(session_id=self.session_id, stop_hook_active=turn > 0)
            )
            self.decisions.append(decision)
            if not decision.blocked:
                return

            if decision.system_message:
                self.banners.append(decision.system_message)
            prompt = decision.reason
            turn += 1

        logger.warning(f"Scripted session {self.session_id} hit max_turns={self.max_turns}")

    def _turn_messages(self, turn: int, prompt: str) -> Sequence[Message]:
        if callable(self.turns):
            return self.turns(turn, prompt)
        if self.turns:
            return self.turns[turn % len(self.turns)]
        return [
            AssistantMessage.from_text(
                f"Mock progress on turn {turn + 1}.", session_id=self.session_id
            ),
            ResultMessage(
                subtype="success",
                status="success",
                session_id=self.session_id,
                num_turns=turn + 1,
                total_cost_usd=round(self.cost_per_turn * (turn + 1), 6),
            ),
        ]

    def get_info(self) -> dict:
        return {
            "name": self.name,
            "session_id": self.session_id,
            "turns_played": len(self.prompts),
        }
