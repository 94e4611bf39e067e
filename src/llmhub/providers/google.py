"""Google Gemini backend (google-genai SDK)."""

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


class GoogleLLM(BaseLLM):
    """Google Gemini ``generate_content`` backend."""

    provider_name = "google"

    def __init__(
        self,
        model: str,
        config: Config | str | None = None,
        *,
        client: Any = None,
    ) -> None:
        super().__init__(model, resolve_config(self.provider_name, config))
        if client is None:
            require_api_key(self.config, "google", "GOOGLE_API_KEY")
        self._client = client
        logger.debug("Created GoogleLLM for model: %s", model)

    def _get_client(self) -> Any:
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            try:
                from google import genai
            except ImportError as e:
                raise APIError(
                    "google-genai package not installed",
                    hint="pip install google-genai",
                ) from e
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def raw_call(self, messages: list[Message]) -> Reply:
        client = self._get_client()
        from google.genai import types

        system_parts: list[str] = []
        contents: list[Any] = []
        for message in messages:
            if message.role is Role.SYSTEM:
                system_parts.append(message.content)
                continue
            role = "model" if message.role is Role.ASSISTANT else "user"
            contents.append(
                types.Content(role=role, parts=[types.Part.from_text(text=message.content)])
            )

        config_kwargs: dict[str, Any] = {"temperature": self.temperature}
        if system_parts:
            config_kwargs["system_instruction"] = "\n\n".join(system_parts)
        if self.max_tokens is not None:
            config_kwargs["max_output_tokens"] = self.max_tokens
        if self.config.top_p is not None:
            config_kwargs["top_p"] = self.config.top_p
        tools = self.available_tools()
        if tools:
            config_kwargs["tools"] = [
                types.Tool(
                    function_declarations=[
                        types.FunctionDeclaration(
                            name=t.name,
                            description=t.description,
                            parameters=t.schema,
                        )
                    ]
                )
                for t in tools
            ]

        try:
            response = client.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="google",
                phase="generate",
                message="Gemini generate failed",
            ) from e
        return self._parse_response(response)

    def _parse_response(self, response: Any) -> Reply:
        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise APIError(
                "No candidates returned from Google API", provider="google", phase="generate"
            )

        finish = getattr(candidates[0], "finish_reason", None)
        finish_reason = getattr(finish, "name", finish)

        tool_calls = [
            ToolCall(
                id=getattr(fc, "id", None) or f"call_{i}",
                name=fc.name,
                arguments=json.dumps(fc.args or {}),
            )
            for i, fc in enumerate(getattr(response, "function_calls", None) or [])
        ]

        meta = getattr(response, "usage_metadata", None)
        usage = None
        if meta is not None:
            usage = make_usage(
                getattr(meta, "prompt_token_count", None),
                getattr(meta, "candidates_token_count", None),
                getattr(meta, "total_token_count", None),
            )

        return Reply(
            text=getattr(response, "text", None) or "",
            model=self.model,
            usage=usage,
            finish_reason=str(finish_reason) if finish_reason is not None else None,
            tool_calls=tool_calls or None,
            raw_response=dump_raw(response),
        )
