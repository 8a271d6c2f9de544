"""Session engine interface and message model."""

from .base import SessionEngine, StopDecision, StopHook, StopHookInput
from .messages import (
    AssistantMessage,
    ContentBlock,
    GenericMessage,
    Message,
    ResultMessage,
    SystemMessage,
    UserMessage,
    parse_message,
)
from .mock import ScriptedEngine

__all__ = [
    "AssistantMessage",
    "ContentBlock",
    "GenericMessage",
    "Message",
    "ResultMessage",
    "ScriptedEngine",
    "SessionEngine",
    "StopDecision",
    "StopHook",
    "StopHookInput",
    "SystemMessage",
    "UserMessage",
    "parse_message",
]
