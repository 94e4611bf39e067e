"""Upstage Solar backend over its OpenAI-compatible HTTP API.

Supports the Korean-optimized Solar chat models, e.g. ``solar-1-mini-chat``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from llmhub.config import Config, resolve_config
from llmhub.errors import APIError
from llmhub.llm import BaseLLM
from llmhub.providers._errors import wrap_provider_error
from llmhub.providers._utils import make_usage, require_api_key
from llmhub.types import Reply

if TYPE_CHECKING:
    from llmhub.types import Message

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.upstage.ai/"
CHAT_ENDPOINT = "v1/solar/chat/completions"
_DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=30.0)


class UpstageLLM(BaseLLM):
    """Upstage Solar chat completions backend."""

    provider_name = "upstage"

    def __init__(
        self,
        model: str,
        config: Config | str | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(model, resolve_config(self.provider_name, config))
        self._api_key = require_api_key(self.config, "upstage", "UPSTAGE_API_KEY")
        base_url = self.config.base_url or DEFAULT_BASE_URL
        self._url = f"{base_url.rstrip('/')}/{CHAT_ENDPOINT}"
        self._client = client
        logger.info("Initialized UpstageLLM with model: %s", model)

    @property
    def url(self) -> str:
        return self._url

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=_DEFAULT_TIMEOUT)
        return self._client

    def close(self) -> None:
        """Close the underlying HTTP client."""
        client = self._client
        if client is None:
            return
        self._client = None
        client.close()

    def raw_call(self, messages: list[Message]) -> Reply:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": m.role.value, "content": m.content} for m in messages
            ],
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        if self.config.top_p is not None:
            body["top_p"] = self.config.top_p

        logger.debug("Sending request to Upstage API: %s", self._url)
        try:
            resp = self._get_client().post(
                self._url,
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="upstage",
                phase="generate",
                message="Upstage API request failed",
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise APIError(
                "No choices returned from Upstage API", provider="upstage", phase="generate"
            )
        choice = choices[0]
        usage_raw = data.get("usage") or {}
        return Reply(
            text=(choice.get("message") or {}).get("content") or "",
            model=data.get("model") or self.model,
            usage=make_usage(
                usage_raw.get("prompt_tokens"),
                usage_raw.get("completion_tokens"),
                usage_raw.get("total_tokens"),
            ),
            finish_reason=choice.get("finish_reason"),
            raw_response=data,
        )
