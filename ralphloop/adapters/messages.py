"""
Message types streamed by a session engine.

Only two variants drive the loop: AssistantMessage (completion
detection) and ResultMessage (cost and error classification). The
others are kept so a run's transcript is complete.
"""

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from ..core.exceptions import UnknownMessageType


@dataclass
class Message:
    """Base class for session messages."""
    type: ClassVar[str] = "message"


@dataclass
class ContentBlock:
    """A content element of an assistant message (text, tool_use or thinking)."""
    type: str = "text"
    text: str = ""
    id: str = ""
    name: str = ""
    input: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ContentBlock":
        return cls(
            type=data.get("type", "text"),
            text=data.get("text") or data.get("thinking") or "",
            id=data.get("id", ""),
            name=data.get("name", ""),
            input=data.get("input"),
        )


@dataclass
class Usage:
    """Token usage attached to an assistant message."""
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Usage"]:
        if not data:
            return None
        return cls(
            input_tokens=data.get("input_tokens", 0),
            output_tokens=data.get("output_tokens", 0),
            cost=data.get("cost", 0.0),
        )


@dataclass
class UserMessage(Message):
    """A user turn, including prompts reinjected by the stop hook."""
    type: ClassVar[str] = "user"
    content: str = ""
    session_id: str = ""
    uuid: str = ""
    is_synthetic: bool = False


@dataclass
class AssistantMessage(Message):
    """A response from the agent."""
    type: ClassVar[str] = "assistant"
    content: list[ContentBlock] = field(default_factory=list)
    session_id: str = ""
    uuid: str = ""
    parent_tool_use_id: Optional[str] = None
    usage: Optional[Usage] = None

    @classmethod
    def from_text(cls, text: str, **kwargs) -> "AssistantMessage":
        return cls(content=[ContentBlock(type="text", text=text)], **kwargs)

    def content_text(self) -> str:
        """Concatenated text of all text blocks, ignoring tool use and thinking."""
        return "".join(block.text for block in self.content if block.type == "text")


@dataclass
class SystemMessage(Message):
    """Session initialization or compaction boundary notice."""
    type: ClassVar[str] = "system"
    subtype: str = "init"
    session_id: str = ""
    model: str = ""
    cwd: str = ""
    tools: list[str] = field(default_factory=list)
    data: dict = field(default_factory=dict)


@dataclass
class ResultMessage(Message):
    """Result/status notification carrying cumulative session usage."""
    type: ClassVar[str] = "result"
    subtype: str = "success"
    status: str = ""
    session_id: str = ""
    result: str = ""
    errors: list[str] = field(default_factory=list)
    is_error: bool = False
    num_turns: int = 0
    duration_ms: int = 0
    total_cost_usd: float = 0.0


@dataclass
class GenericMessage(Message):
    """Any other message kind (stream events, keep-alives, tool progress, ...)."""
    type: ClassVar[str] = "generic"
    message_type: str = ""
    data: dict = field(default_factory=dict)


GENERIC_MESSAGE_TYPES = frozenset({
    "stream_event",
    "keep_alive",
    "tool_progress",
    "todo_update",
    "subagent_result",
    "auth_status",
    "control_request",
    "control_response",
    "control_cancel_request",
    "control",
})


def _user_content(message: dict) -> str:
    content = message.get("content", "")
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "") for block in content
        if isinstance(block, dict) and block.get("type") == "text"
    )


def _error_text(entry: Any) -> str:
    """Flatten one result error entry to text ({"message": ...} objects included)."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and isinstance(entry.get("message"), str):
        return entry["message"]
    return json.dumps(entry, default=str)


def parse_message(data: Union[str, bytes, dict[str, Any]]) -> Message:
    """Parse a raw session message into a Message.

    Args:
        data: JSON text or an already decoded dict

    Returns:
        The matching Message subclass

    Raises:
        UnknownMessageType: If the type field is not recognized
        ValueError: If data is not a JSON object
    """
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")

    msg_type = data.get("type", "")

    if msg_type == "assistant":
        body = data.get("message") or {}
        return AssistantMessage(
            content=[ContentBlock.from_dict(b) for b in body.get("content", [])],
            session_id=data.get("session_id", ""),
            uuid=data.get("uuid", ""),
            parent_tool_use_id=data.get("parent_tool_use_id"),
            usage=Usage.from_dict(data.get("usage")),
        )

    if msg_type == "result":
        return ResultMessage(
            subtype=data.get("subtype", ""),
            status=data.get("status", ""),
            session_id=data.get("session_id", ""),
            result=data.get("result", ""),
            errors=[_error_text(e) for e in data.get("errors") or []],
            is_error=bool(data.get("is_error", False)),
            num_turns=data.get("num_turns", 0),
            duration_ms=data.get("duration_ms", 0),
            total_cost_usd=float(data.get("total_cost_usd", 0.0) or 0.0),
        )

    if msg_type == "user":
        return UserMessage(
            content=_user_content(data.get("message") or {}),
            session_id=data.get("session_id", ""),
            uuid=data.get("uuid", ""),
            is_synthetic=bool(data.get("isSynthetic", False)),
        )

    if msg_type == "system":
        return SystemMessage(
            subtype=data.get("subtype", "init"),
            session_id=data.get("session_id", ""),
            model=data.get("model", ""),
            cwd=data.get("cwd", ""),
            tools=list(data.get("tools") or []),
            data=data,
        )

    if msg_type in GENERIC_MESSAGE_TYPES:
        return GenericMessage(message_type=msg_type, data=data)

    raise UnknownMessageType(type=msg_type)
