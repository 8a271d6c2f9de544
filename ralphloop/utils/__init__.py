"""Utility functions for ralphloop."""

from .output import format_outcome_json, print_outcome, render_outcome

__all__ = ["format_outcome_json", "print_outcome", "render_outcome"]
