"""Anthropic Messages API backend."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from llmhub.config import Config, resolve_config
from llmhub.errors import APIError
from llmhub.llm import BaseLLM
from llmhub.providers._errors import wrap_provider_error
from llmhub.providers._utils import dump_raw, make_usage, require_api_key
from llmhub.types import Reply, Role, ToolCall

if TYPE_CHECKING:
    from llmhub.types import Message

logger = logging.getLogger(__name__)

# The Messages API requires max_tokens on every request.
_ANTHROPIC_DEFAULT_MAX_TOKENS = 4096


class AnthropicLLM(BaseLLM):
    """Anthropic Messages API backend."""

    provider_name = "anthropic"

    def __init__(
        self,
        model: str,
        config: Config | str | None = None,
        *,
        client: Any = None,
    ) -> None:
        super().__init__(model, resolve_config(self.provider_name, config))
        if client is None:
            require_api_key(self.config, "anthropic", "ANTHROPIC_API_KEY")
        self._client = client
        logger.info("Created AnthropicLLM for model: %s", model)

    def _get_client(self) -> Any:
        """Lazily initialize and return the Anthropic client."""
        if self._client is None:
            try:
                from anthropic import Anthropic
            except ImportError as e:
                raise APIError(
                    "anthropic package not installed",
                    hint="pip install anthropic",
                ) from e
            kwargs: dict[str, Any] = {"api_key": self.config.api_key}
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            self._client = Anthropic(**kwargs)
        return self._client

    def raw_call(self, messages: list[Message]) -> Reply:
        client = self._get_client()
        system, turns = _build_messages(messages)

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": turns,
            "max_tokens": self.max_tokens or _ANTHROPIC_DEFAULT_MAX_TOKENS,
            "temperature": self.temperature,
        }
        if system:
            create_kwargs["system"] = system
        if self.config.top_p is not None:
            create_kwargs["top_p"] = self.config.top_p
        tools = self.available_tools()
        if tools:
            create_kwargs["tools"] = [
                {
                    "name": t.name,
                    "description": t.description,
                    "input_schema": t.schema,
                }
                for t in tools
            ]

        try:
            response = client.messages.create(**create_kwargs)
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="anthropic",
                phase="generate",
                message="Anthropic generate failed",
            ) from e
        return self._parse_response(response)

    def _parse_response(self, response: Any) -> Reply:
        blocks = getattr(response, "content", None)
        if blocks is None:
            raise APIError(
                "Anthropic response has no content", provider="anthropic", phase="generate"
            )

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in blocks:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                text_parts.append(block.text)
            elif block_type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=json.dumps(block.input or {}),
                    )
                )

        usage_raw = getattr(response, "usage", None)
        usage = None
        if usage_raw is not None:
            usage = make_usage(usage_raw.input_tokens, usage_raw.output_tokens)

        return Reply(
            text="".join(text_parts),
            model=getattr(response, "model", None) or self.model,
            usage=usage,
            finish_reason=getattr(response, "stop_reason", None),
            tool_calls=tool_calls or None,
            raw_response=dump_raw(response),
        )


def _build_messages(messages: list[Message]) -> tuple[str, list[dict[str, Any]]]:
    """Split out the system prompt and convert turns to Anthropic's shape.

    Anthropic requires strict user/assistant alternation, so consecutive
    same-role turns are merged. Tool results travel as user-side
    ``tool_result`` blocks.
    """
    system_parts: list[str] = []
    turns: list[dict[str, Any]] = []
    for message in messages:
        if message.role is Role.SYSTEM:
            system_parts.append(message.content)
            continue
        if message.role is Role.TOOL:
            role = "user"
            block: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": message.tool_call_id or "",
                "content": message.content,
            }
        else:
            role = message.role.value
            block = {"type": "text", "text": message.content}

        if turns and turns[-1]["role"] == role:
            turns[-1]["content"].append(block)
        else:
            turns.append({"role": role, "content": [block]})
    return "\n\n".join(system_parts), turns
