"""Conversation history: ordering, trimming and system prompt handling."""

from __future__ import annotations

import pytest

from llmhub.conversation import DEFAULT_MAX_MESSAGES, DEFAULT_MAX_TOKENS, Conversation
from llmhub.errors import ConfigurationError
from llmhub.types import Role

pytestmark = pytest.mark.unit


def _contents(conv: Conversation) -> list[str]:
    return [m.content for m in conv.get_messages()]


def test_defaults() -> None:
    conv = Conversation()
    assert conv.max_messages == DEFAULT_MAX_MESSAGES == 100
    assert conv.max_tokens == DEFAULT_MAX_TOKENS == 4000
    assert conv.is_empty()
    assert len(conv) == 0
    assert len(conv.id) == 32


def test_system_prompt_is_the_first_message() -> None:
    conv = Conversation("You are terse.")
    conv.add_user_message("hi").add_assistant_message("hello")

    messages = conv.get_messages()
    assert [m.role for m in messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
    assert messages[0].content == "You are terse."
    assert not conv.is_empty()


@pytest.mark.parametrize("prompt", [None, "", "   "])
def test_blank_system_prompt_adds_no_message(prompt: str | None) -> None:
    conv = Conversation(prompt)
    assert conv.message_count == 0


def test_get_messages_returns_a_copy() -> None:
    conv = Conversation()
    conv.add_user_message("a")
    snapshot = conv.get_messages()
    snapshot.clear()
    assert conv.message_count == 1


def test_trimming_drops_oldest_but_keeps_system_message() -> None:
    conv = Conversation("sys", max_messages=3)
    for i in range(5):
        conv.add_user_message(f"m{i}")

    assert _contents(conv) == ["sys", "m3", "m4"]
    assert conv.get_messages()[0].role is Role.SYSTEM


def test_trimming_without_system_message() -> None:
    conv = Conversation(max_messages=2)
    for i in range(4):
        conv.add_user_message(f"m{i}")
    assert _contents(conv) == ["m2", "m3"]


def test_trimming_always_keeps_the_latest_message() -> None:
    """With max_messages=1 and a system prompt, the newest turn still survives."""
    conv = Conversation("sys", max_messages=1)
    conv.add_user_message("first")
    conv.add_assistant_message("second")

    assert _contents(conv) == ["sys", "second"]
    assert len(conv) == 2


def test_max_messages_must_be_positive() -> None:
    with pytest.raises(ConfigurationError):
        Conversation(max_messages=0)


def test_clear_keeps_only_the_system_message() -> None:
    conv = Conversation("sys")
    conv.add_user_message("a").add_assistant_message("b")

    conv.clear()

    assert _contents(conv) == ["sys"]
    assert conv.is_empty()


def test_set_system_prompt_replaces_in_place() -> None:
    conv = Conversation("old")
    conv.add_user_message("q")

    conv.set_system_prompt("new")
    assert _contents(conv) == ["new", "q"]
    assert conv.system_prompt == "new"

    conv.set_system_prompt(None)
    assert _contents(conv) == ["q"]

    conv.set_system_prompt("again")
    assert _contents(conv) == ["again", "q"]


def test_set_system_prompt_on_conversation_without_one_inserts_first() -> None:
    conv = Conversation()
    conv.add_user_message("q")
    conv.set_system_prompt("sys")
    assert _contents(conv) == ["sys", "q"]


def test_tool_messages_carry_call_id() -> None:
    conv = Conversation()
    conv.add_tool_message("42", "call_1")
    message = conv.get_messages()[0]
    assert message.role is Role.TOOL
    assert message.tool_call_id == "call_1"


def test_token_estimate_and_budget() -> None:
    conv = Conversation(max_tokens=2)
    conv.add_user_message("abcd")  # 1 token
    assert conv.estimate_token_count() == 1
    assert not conv.exceeds_token_budget()

    conv.add_assistant_message("x" * 12)  # 16 chars -> 4 tokens
    assert conv.estimate_token_count() == 4
    assert conv.exceeds_token_budget()


def test_six_turns_into_a_five_message_window() -> None:
    conv = Conversation("S", max_messages=5)
    for i in range(1, 7):
        conv.add_user_message(f"u{i}")

    messages = conv.get_messages()
    assert len(messages) == 5
    assert messages[0].role is Role.SYSTEM
    assert messages[-1].content == "u6"
    assert [m.content for m in messages] == ["S", "u3", "u4", "u5", "u6"]


@pytest.mark.parametrize("max_tokens", [0, -5])
def test_max_tokens_must_be_positive(max_tokens: int) -> None:
    with pytest.raises(ConfigurationError):
        Conversation(max_tokens=max_tokens)
