"""
Tests for iteration prompt construction.
"""

import pytest

from ralphloop.core.prompts import build_prompt, status_banner

pytestmark = pytest.mark.unit


class TestFirstIteration:
    """Prompt for iteration 1."""

    def test_contains_task(self):
        """The first prompt starts with the task."""
        prompt = build_prompt(1, "Build a REST API", "TASK_DONE", 10)
        assert prompt.startswith("Build a REST API")

    def test_contains_completion_instruction(self):
        """The prompt shows the completion signal."""
        prompt = build_prompt(1, "Build a REST API", "TASK_DONE", 10)
        assert "output the completion signal" in prompt
        assert prompt.endswith("<promise>TASK_DONE</promise>")

    def test_has_no_iteration_banner(self):
        """The first prompt has no iteration header."""
        prompt = build_prompt(1, "Build a REST API", "TASK_DONE", 10)
        assert "[Ralph Loop" not in prompt
        assert "Iteration" not in prompt


class TestSubsequentIterations:
    """Prompts reinjected by the stop hook."""

    def test_banner_names_iteration_and_ceiling(self):
        """Continuation prompts name the iteration and ceiling."""
        prompt = build_prompt(3, "Build a REST API", "TASK_DONE", 10)
        assert prompt.startswith("[Ralph Loop - Iteration 3/10]")

    def test_restates_task(self):
        """Continuation prompts restate the task."""
        prompt = build_prompt(3, "Build a REST API", "TASK_DONE", 10)
        assert "Task: Build a REST API" in prompt

    def test_contains_completion_instruction(self):
        """The prompt shows the completion signal."""
        prompt = build_prompt(3, "Build a REST API", "TASK_DONE", 10)
        assert "When finished, output: <promise>TASK_DONE</promise>" in prompt

    def test_mentions_previous_work(self):
        """Continuation prompts point at earlier work."""
        prompt = build_prompt(2, "Build a REST API", "TASK_DONE", 10)
        assert "Your previous work is visible" in prompt

    def test_final_iteration(self):
        """The last iteration is labelled n/n."""
        prompt = build_prompt(10, "Build a REST API", "TASK_DONE", 10)
        assert "[Ralph Loop - Iteration 10/10]" in prompt

    def test_deterministic(self):
        """Same inputs give the same prompt."""
        assert build_prompt(4, "t", "p", 9) == build_prompt(4, "t", "p", 9)


class TestInvalidIteration:

    @pytest.mark.parametrize("iteration", [0, -1])
    def test_rejects_iteration_below_one(self, iteration):
        """Iterations start at 1."""
        with pytest.raises(ValueError):
            build_prompt(iteration, "task", "DONE", 10)


def test_status_banner():
    """The banner names the iteration and ceiling."""
    assert status_banner(2, 10) == "Ralph Loop: Iteration 2 of 10"
