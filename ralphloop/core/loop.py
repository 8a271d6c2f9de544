"""
Ralph loop controller.

The Ralph Wiggum technique keeps an agent working on one task until it
emits a completion promise. Instead of opening a new session per
iteration, the loop installs a stop hook on a single session: every time
the agent tries to end, the hook either approves the exit or blocks it
and reinjects the next iteration's prompt.

State is touched from two places: the stream consumer in run() and the
stop hook, which the engine may call from another thread. Both go
through one lock, held only for the state read or write itself.

Write ownership:
    iteration, approved   stop hook
    complete, cost        stream consumer
    running               run()

Usage:
    loop = RalphLoop(LoopConfig(task="Build a REST API with tests", max_iterations=5))
    async for outcome in loop.run(engine):
        if outcome.complete:
            print("done after", outcome.number, "iterations")
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator, Optional

from ..adapters.base import SessionEngine, StopDecision, StopHookInput
from ..adapters.messages import AssistantMessage, Message, ResultMessage
from .cancellation import CancelToken
from .classifier import classify_result
from .completion import is_complete
from .config import LoopDefaults
from .cost import CostAccountant
from .exceptions import (
    CostRegression,
    ExitCode,
    InvalidConfiguration,
    LoopAlreadyRunning,
    exception_to_json,
)
from .logging import get_loop_logger
from .prompts import build_prompt, status_banner

logger = logging.getLogger("ralphloop.core.loop")


@dataclass(frozen=True)
class LoopConfig:
    """Loop configuration.

    Attributes:
        task: Task prompt for the agent (required)
        completion_promise: Token the agent emits inside <promise> tags when
            done. Empty means the default ("TASK COMPLETE").
        max_iterations: Iteration ceiling. 0 means the default (10).
    """
    task: str
    completion_promise: str = ""
    max_iterations: int = 0

    def with_defaults(self, defaults: Optional[LoopDefaults] = None) -> "LoopConfig":
        """Return the effective configuration with unset fields filled in.

        Raises:
            InvalidConfiguration: For a blank task, or a ceiling that is not a
                non-negative integer
        """
        defaults = defaults or LoopDefaults()
        if not self.task or not self.task.strip():
            raise InvalidConfiguration("task", "must not be empty")
        if (
            isinstance(self.max_iterations, bool)
            or not isinstance(self.max_iterations, int)
            or self.max_iterations < 0
        ):
            raise InvalidConfiguration(
                "max_iterations", f"must be a non-negative integer, got {self.max_iterations!r}"
            )
        return replace(
            self,
            completion_promise=self.completion_promise or defaults.completion_promise,
            max_iterations=self.max_iterations or defaults.max_iterations,
        )


@dataclass
class LoopState:
    """Mutable loop state, guarded by the owning RalphLoop's lock."""
    running: bool = False
    iteration: int = 0
    complete: bool = False
    approved: bool = False
    total_cost_usd: float = 0.0

    def reset(self) -> None:
        self.iteration = 0
        self.complete = False
        self.approved = False
        self.total_cost_usd = 0.0


@dataclass(frozen=True)
class IterationOutcome:
    """Terminal record of one run() call.

    Attributes:
        number: Iteration reached. When the session ended through an approved
            stop this is the last finished iteration; when the stream ended on
            its own it is the iteration that was in progress.
        messages: Every message observed during the run, in order
        complete: Whether the completion promise was detected
        error: Run error, if any (messages are kept either way)
        session_id: Session id from the last result notification
        cost_usd: Cost delta from the last result notification
        total_cost_usd: Cumulative session cost
    """
    number: int
    messages: tuple[Message, ...] = ()
    complete: bool = False
    error: Optional[BaseException] = None
    session_id: str = ""
    cost_usd: float = 0.0
    total_cost_usd: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        if self.error is not None:
            return getattr(self.error, "exit_code", ExitCode.GENERAL_ERROR)
        if self.complete:
            return ExitCode.SUCCESS
        return ExitCode.INCOMPLETE

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable summary (messages are counted, not embedded)."""
        return {
            "number": self.number,
            "complete": self.complete,
            "session_id": self.session_id,
            "cost_usd": self.cost_usd,
            "total_cost_usd": self.total_cost_usd,
            "message_count": len(self.messages),
            "exit_code": self.exit_code,
            "error": exception_to_json(self.error)["error"] if self.error is not None else None,
        }


@dataclass
class _RunRecord:
    """What one run has observed so far. Owned by the stream consumer."""
    messages: list[Message] = field(default_factory=list)
    accountant: CostAccountant = field(default_factory=CostAccountant)
    session_id: str = ""
    cost_error: Optional[CostRegression] = None
    result_error: Optional[BaseException] = None
    processing_error: Optional[BaseException] = None
    stream_error: Optional[BaseException] = None

    def first_error(self) -> Optional[BaseException]:
        """Run error by precedence: cost integrity, result, processing, stream."""
        for err in (self.cost_error, self.result_error, self.processing_error, self.stream_error):
            if err is not None:
                return err
        return None


class RalphLoop:
    """Runs one task in a loop on a single session until it is complete.

    Run() is not safe to call concurrently on the same instance; a second
    call while one is in flight yields a single LoopAlreadyRunning outcome.
    Sequential reuse is fine: state is reset at the start of every run.
    """

    def __init__(self, config: LoopConfig, defaults: Optional[LoopDefaults] = None):
        self._config = config.with_defaults(defaults)
        self._lock = threading.Lock()
        self._state = LoopState()
        self._log = get_loop_logger(
            "ralphloop.core.loop", max_iterations=self._config.max_iterations
        )

    @property
    def config(self) -> LoopConfig:
        return self._config

    @property
    def is_complete(self) -> bool:
        with self._lock:
            return self._state.complete

    @property
    def current_iteration(self) -> int:
        """Number of stop attempts seen so far (0 before the first)."""
        with self._lock:
            return self._state.iteration

    @property
    def total_cost(self) -> float:
        with self._lock:
            return self._state.total_cost_usd

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state.running

    def build_prompt(self, iteration: int) -> str:
        """Prompt for the given 1-based iteration."""
        return build_prompt(
            iteration,
            self._config.task,
            self._config.completion_promise,
            self._config.max_iterations,
        )

    async def stop_hook(self, hook_input: StopHookInput) -> StopDecision:
        """Decide whether the session may end.

        The counter is incremented before the ceiling check, so the first
        stop attempt closes iteration 1 and the loop never runs more than
        max_iterations work cycles.
        """
        max_iterations = self._config.max_iterations
        with self._lock:
            self._state.iteration += 1
            iteration = self._state.iteration
            approve = self._state.complete or iteration >= max_iterations
            if approve:
                self._state.approved = True
            complete = self._state.complete

        if approve:
            if complete:
                self._log.info(f"Completion promise seen, allowing exit after iteration {iteration}")
            else:
                self._log.info(f"Iteration ceiling reached ({iteration}/{max_iterations}), allowing exit")
            return StopDecision.approve()

        next_iteration = iteration + 1
        self._log.update_context(iteration=next_iteration)
        self._log.info(f"Blocking exit of session {hook_input.session_id or '?'}, continuing")
        return StopDecision.block(
            reason=self.build_prompt(next_iteration),
            system_message=status_banner(next_iteration, max_iterations),
        )

    async def run(
        self,
        engine: SessionEngine,
        cancel: Optional[CancelToken] = None,
    ) -> AsyncIterator[IterationOutcome]:
        """Run the loop on a fresh session, yielding exactly one outcome.

        Args:
            engine: Session engine to open the session on
            cancel: Optional cancellation token shared with the engine

        Yields:
            IterationOutcome. Errors are reported on the outcome, never raised.
        """
        with self._lock:
            busy = self._state.running
            if not busy:
                self._state.reset()
                self._state.running = True

        if busy:
            self._log.warning("run() called while a run is already in flight")
            yield IterationOutcome(number=0, error=LoopAlreadyRunning())
            return

        if cancel is None:
            cancel = CancelToken()

        try:
            outcome = await self._drive(engine, cancel)
        finally:
            with self._lock:
                self._state.running = False

        self._log.info(
            f"Run finished: iteration={outcome.number} complete={outcome.complete} "
            f"cost=${outcome.total_cost_usd:.4f} error={outcome.error}"
        )
        yield outcome

    async def _drive(self, engine: SessionEngine, cancel: CancelToken) -> IterationOutcome:
        self._log.update_context(iteration=1)
        prompt = self.build_prompt(1)

        try:
            stream = await engine.open(prompt, stop_hook=self.stop_hook, cancel=cancel)
        except Exception as e:
            self._log.error(f"Failed to open session on {engine.name}: {e}")
            return IterationOutcome(number=0, error=e)

        record = _RunRecord()
        try:
            async for message in stream:
                record.messages.append(message)
                self._log.trace(f"Received {message.type} message")
                try:
                    self._handle_message(record, message)
                except Exception as e:
                    # Keep draining: the session only ends through the stop hook
                    self._log.error(f"Failed to process {message.type} message: {e}")
                    if record.processing_error is None:
                        record.processing_error = e
        except Exception as e:
            self._log.error(f"Session stream failed after {len(record.messages)} messages: {e}")
            record.stream_error = e
        finally:
            try:
                await engine.close()
            except Exception as e:
                self._log.warning(f"Error closing session on {engine.name}: {e}")

        error = record.first_error() or cancel.error()

        with self._lock:
            state = self._state
            number = state.iteration if state.approved else state.iteration + 1
            return IterationOutcome(
                number=number,
                messages=tuple(record.messages),
                complete=state.complete,
                error=error,
                session_id=record.session_id,
                cost_usd=record.accountant.last_delta_usd,
                total_cost_usd=state.total_cost_usd,
            )

    def _handle_message(self, record: _RunRecord, message: Message) -> None:
        if isinstance(message, AssistantMessage):
            self._check_completion(message)
            return
        if not isinstance(message, ResultMessage):
            return

        record.session_id = message.session_id
        try:
            record.accountant.record(message.total_cost_usd)
        except CostRegression as e:
            self._log.error(f"Cost integrity fault: {e}")
            if record.cost_error is None:
                record.cost_error = e
        else:
            with self._lock:
                self._state.total_cost_usd = record.accountant.total_cost_usd

        classification = classify_result(message.status, message.subtype, message.errors)
        if classification.failed:
            record.result_error = classification.to_error()
            self._log.warning(f"Result reported failure: {classification.message}")
        elif classification.absorbed:
            self._log.info(f"Ignoring non-fatal errors: {'; '.join(classification.absorbed)}")

    def _check_completion(self, message: AssistantMessage) -> None:
        if not is_complete(message.content_text(), self._config.completion_promise):
            return
        with self._lock:
            already = self._state.complete
            self._state.complete = True
        if not already:
            self._log.info("Completion promise detected")
