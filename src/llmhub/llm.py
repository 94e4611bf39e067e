"""BaseLLM: the call orchestrator shared by every backend.

Backends implement one primitive, :meth:`BaseLLM.raw_call`. Everything else
(caching, conversation history, tool bookkeeping, async and streaming call
shapes, error wrapping) lives here so callers see the same behavior
regardless of vendor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import json
import logging
from typing import TYPE_CHECKING, ClassVar

from llmhub.config import Config, coerce_config
from llmhub.conversation import DEFAULT_MAX_MESSAGES, DEFAULT_MAX_TOKENS, Conversation
from llmhub.errors import (
    APIError,
    ConfigurationError,
    InvalidStateError,
    LLMHubError,
    RateLimitError,
    StreamError,
)
from llmhub.tools import Tool, ToolRegistry, ToolResult
from llmhub.types import Message, Reply, StreamChunk

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from llmhub.cache import Cache

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 1.0


class BaseLLM(ABC):
    """Abstract orchestrator around a backend's raw call.

    Configuration setters mutate the instance and return it, so calls chain:

        llm = create("gpt-4o-mini").with_temperature(0.2).with_cache(MemoryCache())
        reply = llm.ask("Hello")
    """

    #: Routing key this backend is registered under.
    provider_name: ClassVar[str] = "custom"

    def __init__(self, model: str, config: Config | str | None = None) -> None:
        if not model or not model.strip():
            raise ConfigurationError("Model name cannot be empty")
        self._model = model
        self._config = coerce_config(config)
        self._system_prompt: str | None = None
        self._temperature: float = DEFAULT_TEMPERATURE
        self._max_tokens: int | None = None
        self._cache: Cache | None = None
        self._tool_registry: ToolRegistry | None = None
        self._tools_enabled = True
        self._conversation: Conversation | None = None

        if self._config.temperature is not None:
            self.with_temperature(self._config.temperature)
        if self._config.max_tokens is not None:
            self.with_max_tokens(self._config.max_tokens)
        if self._config.system_prompt is not None:
            self.with_system_prompt(self._config.system_prompt)

    # --- Backend primitive ---------------------------------------------------

    @abstractmethod
    def raw_call(self, messages: list[Message]) -> Reply:
        """Perform the vendor request; raise on any transport or protocol error."""

    def raw_stream(self, messages: list[Message]) -> Iterator[StreamChunk]:
        """Produce stream chunks for *messages*.

        Backends with native streaming override this. The default simulates
        streaming on top of :meth:`ask`.
        """
        return self.fallback_stream(messages)

    # --- Read-only state -----------------------------------------------------

    @property
    def model(self) -> str:
        return self._model

    @property
    def config(self) -> Config:
        return self._config

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    @property
    def temperature(self) -> float:
        return self._temperature

    @property
    def max_tokens(self) -> int | None:
        return self._max_tokens

    @property
    def cache(self) -> Cache | None:
        return self._cache

    @property
    def tool_registry(self) -> ToolRegistry | None:
        return self._tool_registry

    @property
    def tools_enabled(self) -> bool:
        return self._tools_enabled

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def is_conversation_enabled(self) -> bool:
        return self._conversation is not None

    # --- Calls ---------------------------------------------------------------

    def ask(self, prompt: str | Sequence[Message]) -> Reply:
        """Send *prompt* (text or a message sequence) and return the reply.

        Any backend failure surfaces as :class:`APIError` with the original
        exception as ``__cause__``.
        """
        messages = self._build_messages(prompt)
        try:
            return self._ask(messages)
        except Exception as e:
            logger.error("Error calling LLM %s: %s", self._model, e)
            raise self._call_failed(
                e, f"Failed to get response from {self._model}"
            ) from e

    async def ask_async(self, prompt: str | Sequence[Message]) -> Reply:
        """Run :meth:`ask` on a worker thread; errors match the sync path."""
        return await asyncio.to_thread(self.ask, prompt)

    def ask_stream(self, prompt: str | Sequence[Message]) -> Iterator[StreamChunk]:
        """Return a lazy, single-use iterator of chunks for *prompt*.

        Nothing is sent until the first chunk is requested. A failure is
        raised as :class:`StreamError` after any chunks already yielded.
        """
        messages = self._build_messages(prompt)
        return self._guarded_stream(messages)

    def fallback_stream(self, messages: list[Message]) -> Iterator[StreamChunk]:
        """Split a full reply on single spaces, one chunk per word.

        Concatenating the text chunks reproduces the reply text exactly.
        """
        reply = self.ask(messages)
        for index, word in enumerate(reply.text.split(" ")):
            yield StreamChunk.text(word if index == 0 else f" {word}", index=index)
        yield StreamChunk.finish(reply.finish_reason)

    def chat(self, message: str) -> Reply:
        """Send *message* with the full conversation history and record both turns."""
        conversation = self._require_conversation()
        conversation.add_user_message(message)
        reply = self.ask(conversation.get_messages())
        conversation.add_assistant_message(reply.text)
        return reply

    async def chat_async(self, message: str) -> Reply:
        return await asyncio.to_thread(self.chat, message)

    # --- Configuration setters -----------------------------------------------

    def with_system_prompt(self, system_prompt: str | None) -> BaseLLM:
        self._system_prompt = system_prompt
        return self

    def with_temperature(self, temperature: float) -> BaseLLM:
        if not 0.0 <= temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got {temperature}",
            )
        self._temperature = temperature
        return self

    def with_max_tokens(self, max_tokens: int) -> BaseLLM:
        if max_tokens <= 0:
            raise ConfigurationError(f"max_tokens must be positive, got {max_tokens}")
        self._max_tokens = max_tokens
        return self

    def with_cache(self, cache: Cache | None) -> BaseLLM:
        self._cache = cache
        return self

    def with_tools(self, *tools: ToolRegistry | Tool) -> BaseLLM:
        """Install a registry, or add individual tools to the current one."""
        if len(tools) == 1 and isinstance(tools[0], ToolRegistry):
            self._tool_registry = tools[0]
            return self
        if self._tool_registry is None:
            self._tool_registry = ToolRegistry()
        for tool in tools:
            if isinstance(tool, ToolRegistry):
                raise ConfigurationError("Pass a ToolRegistry on its own, not mixed with tools")
            self._tool_registry.register(tool)
        return self

    def with_tools_enabled(self, enabled: bool) -> BaseLLM:
        self._tools_enabled = enabled
        return self

    # --- Tools ---------------------------------------------------------------

    def available_tools(self) -> list[Tool]:
        """Enabled tools, or an empty list when tools are off or absent."""
        if not self._tools_enabled or self._tool_registry is None:
            return []
        return self._tool_registry.enabled_tools()

    def run_tool_calls(self, reply: Reply) -> list[Message]:
        """Execute the tool calls in *reply* and return tool-role result messages.

        Unknown, disabled or failing tools yield an ``Error: ...`` message
        rather than raising, so the result can always be sent back to the model.
        """
        available = {t.name: t for t in self.available_tools()}
        results: list[Message] = []
        for call in reply.tool_calls or []:
            tool = available.get(call.name)
            if tool is None:
                result = ToolResult.failure(f"Unknown or disabled tool: {call.name}")
            else:
                result = _execute_tool(tool, call.arguments)
            content = result.output if result.success else f"Error: {result.error}"
            results.append(Message.tool(content or "", call.id))
        return results

    # --- Conversation --------------------------------------------------------

    def enable_conversation(
        self,
        system_prompt: str | None = None,
        *,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> BaseLLM:
        """Start a fresh conversation session, replacing any existing one.

        Without *system_prompt* the instance's own system prompt is used.
        """
        self._conversation = Conversation(
            system_prompt if system_prompt is not None else self._system_prompt,
            max_messages=max_messages,
            max_tokens=max_tokens,
        )
        return self

    def disable_conversation(self) -> BaseLLM:
        self._conversation = None
        return self

    def clear_conversation(self) -> BaseLLM:
        self._require_conversation().clear()
        return self

    # --- Internals -----------------------------------------------------------

    def _ask(self, messages: list[Message]) -> Reply:
        cache = self._cache
        if cache is None or not cache.enabled:
            logger.debug("Sending %d messages to %s", len(messages), self._model)
            return self.raw_call(messages)

        key = cache.generate_key(
            messages, self._model, self._temperature, self._max_tokens
        )
        cached = cache.get(key)
        if cached is not None:
            logger.debug("Returning cached response for %d messages", len(messages))
            return cached

        logger.debug("Cache miss, sending %d messages to %s", len(messages), self._model)
        reply = self.raw_call(messages)
        cache.put(key, reply)
        return reply

    def _guarded_stream(self, messages: list[Message]) -> Iterator[StreamChunk]:
        try:
            yield from self.raw_stream(messages)
        except StreamError:
            raise
        except Exception as e:
            logger.error("Streaming from %s failed: %s", self._model, e)
            raise self._call_failed(
                e, f"Streaming failed for {self._model}", error_cls=StreamError
            ) from e

    def _build_messages(self, prompt: str | Sequence[Message]) -> list[Message]:
        if isinstance(prompt, str):
            messages: list[Message] = []
            if self._system_prompt:
                messages.append(Message.system(self._system_prompt))
            messages.append(Message.user(prompt))
            return messages
        messages = list(prompt)
        if not all(isinstance(m, Message) for m in messages):
            raise ConfigurationError(
                "prompt must be a string or a sequence of Message objects",
                hint="Build messages with Message.user(...), Message.system(...), etc.",
            )
        return messages

    def _require_conversation(self) -> Conversation:
        if self._conversation is None:
            raise InvalidStateError(
                "Conversation mode is not enabled",
                hint="Call enable_conversation() first.",
            )
        return self._conversation

    def _call_failed(
        self,
        exc: Exception,
        message: str,
        *,
        error_cls: type[APIError] = APIError,
    ) -> APIError:
        """Build the uniform call error, keeping metadata a backend attached."""
        hint = exc.hint if isinstance(exc, LLMHubError) else None
        if isinstance(exc, APIError):
            if error_cls is APIError and isinstance(exc, RateLimitError):
                error_cls = RateLimitError
            return error_cls(
                message,
                hint=hint,
                model=self._model,
                provider=exc.provider or self.provider_name,
                status_code=exc.status_code,
                phase=exc.phase,
            )
        return error_cls(
            message, hint=hint, model=self._model, provider=self.provider_name
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self._model!r})"


def _execute_tool(tool: Tool, arguments: str) -> ToolResult:
    try:
        args = json.loads(arguments or "{}")
    except json.JSONDecodeError as e:
        return ToolResult.failure(f"Invalid arguments for {tool.name}: {e}")
    if not isinstance(args, dict):
        return ToolResult.failure(f"Arguments for {tool.name} must be a JSON object")
    try:
        return tool.execute(args)
    except Exception as e:
        logger.warning("Tool '%s' raised: %s", tool.name, e)
        return ToolResult.failure(f"{type(e).__name__}: {e}")
