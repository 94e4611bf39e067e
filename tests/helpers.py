"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off BaseLLM subclasses as coverage expands.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from llmhub.llm import BaseLLM
from llmhub.types import Message, Reply, StreamChunk


def echo(messages: list[Message]) -> str:
    return f"echo:{messages[-1].content}" if messages else "echo:"


class ScriptedLLM(BaseLLM):
    """BaseLLM whose raw call is driven by a script, recording every request.

    ``responses`` may be a callable ``messages -> str``, or an iterable of
    strings/exceptions consumed in order (exceptions are raised).
    """

    provider_name = "fake"

    def __init__(
        self,
        model: str = "fake-model",
        config: Any = None,
        *,
        responses: Callable[[list[Message]], str] | Iterable[str | Exception] = echo,
        stream: Iterable[StreamChunk | Exception] | None = None,
    ) -> None:
        super().__init__(model, config)
        self._responder = responses if callable(responses) else None
        self._queue = None if callable(responses) else list(responses)
        self._stream = list(stream) if stream is not None else None
        self.calls: list[list[Message]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def raw_call(self, messages: list[Message]) -> Reply:
        self.calls.append(list(messages))
        if self._responder is not None:
            text = self._responder(messages)
        else:
            assert self._queue, "ScriptedLLM ran out of scripted responses"
            item = self._queue.pop(0)
            if isinstance(item, Exception):
                raise item
            text = item
        return Reply(text=text, model=self.model, finish_reason="stop")

    def raw_stream(self, messages: list[Message]) -> Iterator[StreamChunk]:
        if self._stream is None:
            yield from super().raw_stream(messages)
            return
        self.calls.append(list(messages))
        for item in self._stream:
            if isinstance(item, Exception):
                raise item
            yield item
