"""Conversation: bounded, ordered message history for chat sessions."""

from __future__ import annotations

import logging
import uuid

from llmhub.errors import ConfigurationError
from llmhub.types import Message, Role

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 100
DEFAULT_MAX_TOKENS = 4000


class Conversation:
    """Ordered history of a single chat session.

    A system message, when configured, always sits at index 0 and is never
    trimmed. Once the history grows past ``max_messages`` the oldest
    non-system messages are dropped, but the most recent one is always kept.

    Not safe for concurrent mutation; callers must serialize ``chat()`` calls
    that share a conversation.
    """

    def __init__(
        self,
        system_prompt: str | None = None,
        *,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        if max_messages < 1:
            raise ConfigurationError(
                f"max_messages must be >= 1, got {max_messages}",
            )
        if max_tokens < 1:
            raise ConfigurationError(f"max_tokens must be >= 1, got {max_tokens}")
        self.id = uuid.uuid4().hex
        self.max_messages = max_messages
        #: Soft budget compared against :meth:`estimate_token_count`.
        self.max_tokens = max_tokens
        self._system_prompt = system_prompt
        self._messages: list[Message] = []
        if _has_text(system_prompt):
            self._messages.append(Message.system(system_prompt))  # type: ignore[arg-type]
        logger.debug(
            "Created conversation %s (max_messages=%d, max_tokens=%d)",
            self.id,
            max_messages,
            max_tokens,
        )

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    @property
    def messages(self) -> list[Message]:
        return self.get_messages()

    @property
    def message_count(self) -> int:
        return len(self._messages)

    def get_messages(self) -> list[Message]:
        """Return a copy of the history in chronological order."""
        return list(self._messages)

    def add_user_message(self, content: str) -> Conversation:
        self._add(Message.user(content))
        return self

    def add_assistant_message(self, content: str) -> Conversation:
        self._add(Message.assistant(content))
        return self

    def add_tool_message(self, content: str, tool_call_id: str | None) -> Conversation:
        self._add(Message.tool(content, tool_call_id))
        return self

    def clear(self) -> Conversation:
        """Drop all turns, keeping only the configured system message."""
        self._messages.clear()
        if _has_text(self._system_prompt):
            self._messages.append(Message.system(self._system_prompt))  # type: ignore[arg-type]
        logger.debug("Cleared conversation %s", self.id)
        return self

    def set_system_prompt(self, system_prompt: str | None) -> Conversation:
        """Replace the leading system message in place."""
        if self._has_system_message():
            del self._messages[0]
        self._system_prompt = system_prompt
        if _has_text(system_prompt):
            self._messages.insert(0, Message.system(system_prompt))  # type: ignore[arg-type]
        logger.debug("Changed system prompt of conversation %s", self.id)
        return self

    def is_empty(self) -> bool:
        """True when nothing but the system message is present."""
        return len(self._messages) <= (1 if self._has_system_message() else 0)

    def estimate_token_count(self) -> int:
        """Approximate token count: total characters divided by four."""
        return sum(len(m.content) for m in self._messages) // 4

    def exceeds_token_budget(self) -> bool:
        return self.estimate_token_count() > self.max_tokens

    def _add(self, message: Message) -> None:
        self._messages.append(message)
        if len(self._messages) > self.max_messages:
            self._trim()
        logger.debug(
            "Added %s message (total %d)", message.role.value, len(self._messages)
        )

    def _trim(self) -> None:
        start = 1 if self._has_system_message() else 0
        removed = 0
        # Keep at least one message after the system prompt.
        while len(self._messages) > self.max_messages and len(self._messages) > start + 1:
            del self._messages[start]
            removed += 1
        if removed:
            logger.debug("Trimmed %d old message(s) from %s", removed, self.id)

    def _has_system_message(self) -> bool:
        return bool(self._messages) and self._messages[0].role is Role.SYSTEM

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"Conversation(id={self.id!r}, messages={len(self._messages)})"


def _has_text(value: str | None) -> bool:
    return value is not None and bool(value.strip())
