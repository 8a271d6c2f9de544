"""
Prompt construction for Ralph loop iterations.

Iteration 1 gets the task plus the completion instructions. Later
iterations are reinjected through the stop hook, so they restate the
task in full in case the session has truncated its history.
"""

from .completion import promise_tag

FIRST_PROMPT_TEMPLATE = """{task}

When you have completed this task, output the completion signal:
{tag}"""

CONTINUE_PROMPT_TEMPLATE = """[Ralph Loop - Iteration {iteration}/{max_iterations}]
Your previous work is visible in the files and commits. Continue toward completion.
When finished, output: {tag}

Task: {task}"""


def build_prompt(iteration: int, task: str, completion_promise: str, max_iterations: int) -> str:
    """Build the prompt sent to the agent for a given iteration.

    Args:
        iteration: 1-based iteration number
        task: The task description
        completion_promise: Token the agent must emit inside <promise> tags
        max_iterations: Iteration ceiling shown in the banner

    Returns:
        Prompt text

    Raises:
        ValueError: If iteration is less than 1
    """
    if iteration < 1:
        raise ValueError(f"iteration must be >= 1, got {iteration}")

    tag = promise_tag(completion_promise)
    if iteration == 1:
        return FIRST_PROMPT_TEMPLATE.format(task=task, tag=tag)

    return CONTINUE_PROMPT_TEMPLATE.format(
        iteration=iteration,
        max_iterations=max_iterations,
        tag=tag,
        task=task,
    )


def status_banner(iteration: int, max_iterations: int) -> str:
    """Status line surfaced to observers when the loop continues."""
    return f"Ralph Loop: Iteration {iteration} of {max_iterations}"
