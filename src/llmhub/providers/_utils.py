"""Shared utilities for provider implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from llmhub.errors import ConfigurationError
from llmhub.types import Usage

if TYPE_CHECKING:
    from llmhub.config import Config


def require_api_key(config: Config, provider: str, env_var: str) -> str:
    """Return the configured API key or fail with a pointer to *env_var*."""
    if not config.api_key or not config.api_key.strip():
        raise ConfigurationError(
            f"API key required for {provider}",
            hint=f"Set {env_var} environment variable or pass Config(api_key=...).",
        )
    return config.api_key


def make_usage(
    prompt_tokens: Any, completion_tokens: Any, total_tokens: Any = None
) -> Usage | None:
    """Build Usage from loosely typed SDK counters; None when nothing was reported."""
    if prompt_tokens is None and completion_tokens is None and total_tokens is None:
        return None
    prompt = int(prompt_tokens or 0)
    completion = int(completion_tokens or 0)
    total = int(total_tokens) if total_tokens is not None else prompt + completion
    return Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)


def dump_raw(obj: Any) -> dict[str, Any] | None:
    """Best-effort plain-dict view of an SDK response for ``Reply.raw_response``."""
    if isinstance(obj, dict):
        return obj
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        data = dump(mode="json", exclude_none=True)
        if isinstance(data, dict):
            return data
    return None
