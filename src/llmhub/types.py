"""Value types shared by every backend: messages, replies, stream chunks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Author of a message turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class Message:
    """A single conversational turn.

    ``role`` accepts either a :class:`Role` or its string value.
    """

    role: Role
    content: str = ""
    name: str | None = None
    tool_call_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(Role.ASSISTANT, content)

    @classmethod
    def tool(cls, content: str, tool_call_id: str | None = None) -> Message:
        return cls(Role.TOOL, content, tool_call_id=tool_call_id)

    def to_dict(self) -> dict[str, str]:
        """Return the OpenAI-style ``{"role", "content", ...}`` mapping."""
        data = {"role": self.role.value, "content": self.content}
        if self.name is not None:
            data["name"] = self.name
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data


class Usage(BaseModel):
    """Token accounting reported by a backend."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    #: JSON-encoded argument object, exactly as the model produced it.
    arguments: str = "{}"
    type: str = "function"


class Reply(BaseModel):
    """Normalized response envelope returned from any backend call."""

    model_config = ConfigDict(frozen=True)

    text: str
    model: str
    usage: Usage | None = None
    finish_reason: str | None = None
    tool_calls: list[ToolCall] | None = None
    raw_response: dict[str, Any] | None = None

    def to_json(self) -> str:
        """Serialize as indented, human-readable JSON."""
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, data: str | bytes) -> Reply:
        return cls.model_validate_json(data)


@dataclass(frozen=True)
class StreamChunk:
    """One fragment of a streamed reply.

    A stream is terminated by exactly one chunk with ``finished=True``.
    """

    content: str
    finished: bool = False
    finish_reason: str | None = None
    index: int | None = None
    type: str = "text"
    metadata: Any = None

    @classmethod
    def text(cls, content: str, *, index: int | None = None) -> StreamChunk:
        return cls(content=content, index=index)

    @classmethod
    def finish(cls, reason: str | None) -> StreamChunk:
        return cls(content="", finished=True, finish_reason=reason)
