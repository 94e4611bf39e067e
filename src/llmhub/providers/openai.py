"""OpenAI chat completions backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from llmhub.config import Config, resolve_config
from llmhub.errors import APIError
from llmhub.llm import BaseLLM
from llmhub.providers._errors import wrap_provider_error
from llmhub.providers._utils import dump_raw, make_usage, require_api_key
from llmhub.types import Reply, StreamChunk, ToolCall

if TYPE_CHECKING:
    from collections.abc import Iterator

    from llmhub.types import Message

logger = logging.getLogger(__name__)


class OpenAILLM(BaseLLM):
    """OpenAI Chat Completions backend with native streaming."""

    provider_name = "openai"

    def __init__(
        self,
        model: str,
        config: Config | str | None = None,
        *,
        client: Any = None,
    ) -> None:
        super().__init__(model, resolve_config(self.provider_name, config))
        if client is None:
            require_api_key(self.config, "openai", "OPENAI_API_KEY")
        self._client = client
        logger.debug("Created OpenAILLM for model: %s", model)

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError as e:
                raise APIError(
                    "openai package not installed",
                    hint="pip install openai",
                ) from e
            self._client = OpenAI(
                api_key=self.config.api_key,
                organization=self.config.organization_id,
                project=self.config.project_id,
                base_url=self.config.base_url,
            )
        return self._client

    def raw_call(self, messages: list[Message]) -> Reply:
        client = self._get_client()
        try:
            completion = client.chat.completions.create(**self._request_kwargs(messages))
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="openai",
                phase="generate",
                message="OpenAI chat completion failed",
            ) from e

        choices = getattr(completion, "choices", None)
        if not choices:
            raise APIError(
                "No choices returned from OpenAI API", provider="openai", phase="generate"
            )
        choice = choices[0]
        message = choice.message

        tool_calls = [
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=tc.function.arguments or "{}",
            )
            for tc in getattr(message, "tool_calls", None) or []
        ]
        usage_raw = getattr(completion, "usage", None)
        usage = None
        if usage_raw is not None:
            usage = make_usage(
                usage_raw.prompt_tokens,
                usage_raw.completion_tokens,
                usage_raw.total_tokens,
            )

        return Reply(
            text=message.content or "",
            model=getattr(completion, "model", None) or self.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            tool_calls=tool_calls or None,
            raw_response=dump_raw(completion),
        )

    def raw_stream(self, messages: list[Message]) -> Iterator[StreamChunk]:
        client = self._get_client()
        kwargs = self._request_kwargs(messages)
        kwargs["stream"] = True

        finish_reason: str | None = None
        index = 0
        try:
            for event in client.chat.completions.create(**kwargs):
                if not event.choices:
                    continue
                choice = event.choices[0]
                content = getattr(choice.delta, "content", None)
                if content:
                    yield StreamChunk.text(content, index=index)
                    index += 1
                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="openai",
                phase="stream",
                message="OpenAI stream failed",
            ) from e
        yield StreamChunk.finish(finish_reason)

    def _request_kwargs(self, messages: list[Message]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            kwargs["max_completion_tokens"] = self.max_tokens
        if self.config.top_p is not None:
            kwargs["top_p"] = self.config.top_p

        tools = self.available_tools()
        if tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.schema,
                    },
                }
                for t in tools
            ]
        return kwargs
