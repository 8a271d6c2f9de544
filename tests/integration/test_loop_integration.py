"""
End-to-end loop runs against scripted sessions.

Exercises the controller, the scripted engine, config file loading and
output together, the way an embedding application would.
"""

import asyncio
import json
import logging
from io import StringIO

import pytest
from rich.console import Console

from ralphloop import CancelToken, LoopConfig, RalphLoop
from ralphloop.adapters.base import StopHookInput
from ralphloop.adapters.messages import AssistantMessage, ResultMessage, parse_message
from ralphloop.adapters.mock import ScriptedEngine
from ralphloop.core.config import clear_config_cache, load_config
from ralphloop.core.exceptions import LoopCancelled
from ralphloop.utils.output import format_outcome_json, print_outcome


async def run_once(loop, engine, cancel=None):
    outcomes = [outcome async for outcome in loop.run(engine, cancel=cancel)]
    assert len(outcomes) == 1
    return outcomes[0]


class ThreadedHookEngine(ScriptedEngine):
    """Scripted engine that invokes the stop hook from a worker thread."""

    name = "threaded"

    async def _stream(self, prompt, stop_hook, cancel):
        def hook_in_thread(hook_input):
            return asyncio.run(stop_hook(hook_input))

        async def threaded_hook(hook_input: StopHookInput):
            return await asyncio.to_thread(hook_in_thread, hook_input)

        async for message in super()._stream(prompt, threaded_hook, cancel):
            yield message


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_never_completes_stops_at_ceiling(self):
        """A task that never completes runs exactly to the ceiling with banners."""
        loop = RalphLoop(LoopConfig(task="write X", max_iterations=3))
        engine = ScriptedEngine()

        outcome = await run_once(loop, engine)

        assert outcome.number == 3
        assert not outcome.complete
        assert outcome.error is None
        assert len(engine.prompts) == 3
        assert engine.prompts[0].startswith("write X")
        assert "<promise>TASK COMPLETE</promise>" in engine.prompts[0]
        assert "Iteration 2/3" in engine.prompts[1]
        assert "Iteration 3/3" in engine.prompts[2]
        assert engine.prompts[2].endswith("Task: write X")
        assert engine.banners == ["Ralph Loop: Iteration 2 of 3", "Ralph Loop: Iteration 3 of 3"]
        assert outcome.total_cost_usd == pytest.approx(0.03)

    @pytest.mark.asyncio
    async def test_completes_from_parsed_wire_messages(self):
        """Parsed wire messages drive completion and cost."""
        wire = [
            [
                '{"type": "system", "subtype": "init", "session_id": "w1", "model": "sonnet"}',
                '{"type": "assistant", "session_id": "w1", "message": {"content": '
                '[{"type": "text", "text": "Scaffolded the module."}]}}',
                '{"type": "result", "subtype": "success", "session_id": "w1", "total_cost_usd": 0.02}',
            ],
            [
                '{"type": "assistant", "session_id": "w1", "message": {"content": '
                '[{"type": "text", "text": "Tests green. <promise>SHIPPED</promise>"}]}}',
                '{"type": "result", "subtype": "success", "session_id": "w1", "total_cost_usd": 0.05}',
            ],
        ]
        turns = [[parse_message(line) for line in turn] for turn in wire]
        loop = RalphLoop(LoopConfig(task="ship it", completion_promise="SHIPPED", max_iterations=5))

        outcome = await run_once(loop, ScriptedEngine(turns=turns))

        assert outcome.complete
        assert outcome.number == 2
        assert outcome.session_id == "w1"
        assert outcome.cost_usd == pytest.approx(0.03)
        assert outcome.total_cost_usd == pytest.approx(0.05)
        assert len(outcome.messages) == 5

    @pytest.mark.asyncio
    async def test_hook_called_from_worker_thread(self):
        """Stop hook calls from another thread are counted correctly."""
        loop = RalphLoop(LoopConfig(task="t", max_iterations=4))
        engine = ThreadedHookEngine()

        outcome = await run_once(loop, engine)

        assert outcome.number == 4
        assert len(engine.prompts) == 4
        assert loop.current_iteration == 4

    @pytest.mark.asyncio
    async def test_cancel_from_another_task(self):
        """Cancelling from another task ends the run early."""
        token = CancelToken()
        loop = RalphLoop(LoopConfig(task="t", max_iterations=50))
        engine = ScriptedEngine(delay=0.01)

        async def cancel_soon():
            await asyncio.sleep(0.05)
            token.cancel("operator stop")

        canceller = asyncio.create_task(cancel_soon())
        outcome = await run_once(loop, engine, cancel=token)
        await canceller

        assert isinstance(outcome.error, LoopCancelled)
        assert outcome.number < 50
        assert not loop.is_running

    @pytest.mark.asyncio
    async def test_independent_instances_run_concurrently(self):
        """Separate loops run side by side."""
        loops = [RalphLoop(LoopConfig(task=f"task {i}", max_iterations=i + 1)) for i in range(3)]
        engines = [ScriptedEngine(delay=0.001) for _ in loops]

        outcomes = await asyncio.gather(*(run_once(l, e) for l, e in zip(loops, engines)))

        assert [o.number for o in outcomes] == [1, 2, 3]
        assert all(o.error is None for o in outcomes)


class TestConfigFile:

    @pytest.fixture(autouse=True)
    def fresh_cache(self):
        clear_config_cache()
        yield
        clear_config_cache()

    @pytest.mark.asyncio
    async def test_loop_defaults_from_project_file(self, tmp_path):
        """Loop defaults come from a project config file."""
        config_file = tmp_path / ".ralphloop.yaml"
        config_file.write_text(
            "project:\n  name: demo\nloop:\n  completion_promise: ALL DONE\n  max_iterations: 2\n"
        )
        config = load_config(config_file, use_cache=False)
        loop = RalphLoop(LoopConfig(task="t"), defaults=config.loop)
        engine = ScriptedEngine()

        outcome = await run_once(loop, engine)

        assert loop.config.completion_promise == "ALL DONE"
        assert "<promise>ALL DONE</promise>" in engine.prompts[0]
        assert outcome.number == 2

    def test_config_file_applies_only_when_passed_in(self, isolated_cwd):
        """A .ralphloop.yaml in the working directory is used through load_config(), never implicitly."""
        (isolated_cwd / ".ralphloop.yaml").write_text("loop:\n  max_iterations: 2\n")

        implicit = RalphLoop(LoopConfig(task="t"))
        explicit = RalphLoop(LoopConfig(task="t"), defaults=load_config().loop)

        assert implicit.config.max_iterations == 10
        assert explicit.config.max_iterations == 2


class TestReporting:

    @pytest.mark.asyncio
    async def test_logs_carry_iteration_prefix(self, caplog):
        """Log lines carry the loop position."""
        loop = RalphLoop(LoopConfig(task="t", max_iterations=2))

        with caplog.at_level(logging.INFO, logger="ralphloop"):
            await run_once(loop, ScriptedEngine())

        text = caplog.text
        assert "[ralph:2/2]" in text
        assert "Iteration ceiling reached" in text

    @pytest.mark.asyncio
    async def test_outcome_rendering(self):
        """Outcomes render as a table and as JSON."""
        final = ResultMessage(subtype="success", session_id="r1", total_cost_usd=0.1)
        turns = [[AssistantMessage.from_text("<promise>TASK COMPLETE</promise>"), final]]
        outcome = await run_once(RalphLoop(LoopConfig(task="t")), ScriptedEngine(turns=turns))

        buffer = StringIO()
        print_outcome(outcome, out=Console(file=buffer, width=100, no_color=True))
        assert "complete" in buffer.getvalue()
        assert "r1" in buffer.getvalue()

        data = json.loads(format_outcome_json(outcome))
        assert data["complete"] is True
        assert data["session_id"] == "r1"
