"""Ollama local-model backend over its HTTP chat API."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from llmhub.config import DEFAULT_OLLAMA_HOST, Config, resolve_config
from llmhub.errors import APIError
from llmhub.llm import BaseLLM
from llmhub.providers._errors import wrap_provider_error
from llmhub.providers._utils import make_usage
from llmhub.types import Reply, StreamChunk

if TYPE_CHECKING:
    from collections.abc import Iterator

    from llmhub.types import Message

logger = logging.getLogger(__name__)

_CHAT_PATH = "/api/chat"
# Local models can take a while to load on first use.
_DEFAULT_TIMEOUT = httpx.Timeout(120.0, connect=10.0)


class OllamaLLM(BaseLLM):
    """Ollama ``/api/chat`` backend with NDJSON streaming. No API key needed."""

    provider_name = "ollama"

    def __init__(
        self,
        model: str,
        config: Config | str | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(model, resolve_config(self.provider_name, config))
        self._base_url = (self.config.base_url or DEFAULT_OLLAMA_HOST).rstrip("/")
        self._client = client
        logger.debug("Created OllamaLLM for model %s at %s", model, self._base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(base_url=self._base_url, timeout=_DEFAULT_TIMEOUT)
        return self._client

    def close(self) -> None:
        """Close the underlying HTTP client."""
        client = self._client
        if client is None:
            return
        self._client = None
        client.close()

    def raw_call(self, messages: list[Message]) -> Reply:
        client = self._get_client()
        try:
            resp = client.post(_CHAT_PATH, json=self._payload(messages, stream=False))
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="ollama",
                phase="generate",
                message="Ollama chat request failed",
            ) from e

        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            raise APIError(
                "Ollama response is missing 'message'", provider="ollama", phase="generate"
            )
        return Reply(
            text=message.get("content") or "",
            model=data.get("model") or self.model,
            usage=make_usage(data.get("prompt_eval_count"), data.get("eval_count")),
            finish_reason=_finish_reason(data),
            raw_response=data,
        )

    def raw_stream(self, messages: list[Message]) -> Iterator[StreamChunk]:
        client = self._get_client()
        finish_reason: str | None = None
        index = 0
        try:
            with client.stream(
                "POST", _CHAT_PATH, json=self._payload(messages, stream=True)
            ) as resp:
                resp.raise_for_status()
                for line in resp.iter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if "error" in data:
                        raise APIError(
                            f"Ollama stream error: {data['error']}",
                            provider="ollama",
                            phase="stream",
                        )
                    content = (data.get("message") or {}).get("content")
                    if content:
                        yield StreamChunk.text(content, index=index)
                        index += 1
                    if data.get("done"):
                        finish_reason = _finish_reason(data)
                        break
        except APIError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="ollama",
                phase="stream",
                message="Ollama stream failed",
            ) from e
        yield StreamChunk.finish(finish_reason)

    def _payload(self, messages: list[Message], *, stream: bool) -> dict[str, Any]:
        options: dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if self.config.top_p is not None:
            options["top_p"] = self.config.top_p
        return {
            "model": self.model,
            "messages": [
                {"role": m.role.value, "content": m.content} for m in messages
            ],
            "stream": stream,
            "options": options,
        }


def _finish_reason(data: dict[str, Any]) -> str | None:
    reason = data.get("done_reason")
    if reason:
        return str(reason)
    return "stop" if data.get("done") else None
