"""Configuration: frozen Config with range validation and env resolution."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, fields
import os
from typing import Any

from dotenv import load_dotenv

from llmhub.errors import ConfigurationError

load_dotenv()

DEFAULT_OLLAMA_HOST = "http://localhost:11434"

# Provider-specific environment variable names, in precedence order per field.
_ENV_VARS: dict[str, dict[str, tuple[str, ...]]] = {
    "openai": {
        "api_key": ("OPENAI_API_KEY",),
        "organization_id": ("OPENAI_ORG_ID",),
        "project_id": ("OPENAI_PROJECT_ID",),
        "base_url": ("OPENAI_BASE_URL",),
    },
    "anthropic": {
        "api_key": ("ANTHROPIC_API_KEY",),
        "base_url": ("ANTHROPIC_BASE_URL",),
    },
    "google": {
        "api_key": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    },
    "upstage": {
        "api_key": ("UPSTAGE_API_KEY",),
    },
    "ollama": {
        "base_url": ("OLLAMA_HOST",),
    },
}


def api_key_env_var(provider: str) -> str:
    """Return the primary API key environment variable for *provider*."""
    names = _ENV_VARS.get(provider.lower(), {}).get("api_key")
    if names:
        return names[0]
    return f"{provider.upper()}_API_KEY"


@dataclass(frozen=True)
class Config:
    """Immutable generation and connection settings.

    Every field is optional; unset fields fall back to backend defaults.

    Example:
        base = Config(api_key="sk-...", temperature=0.5)
        cfg = base.merge(Config(temperature=0.8))
    """

    api_key: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    system_prompt: str | None = None
    organization_id: str | None = None
    project_id: str | None = None
    base_url: str | None = None

    def __post_init__(self) -> None:
        """Reject out-of-range generation parameters."""
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got {self.temperature}",
                hint="Use 0 for deterministic output, up to 2 for maximum variety.",
            )
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ConfigurationError(
                f"max_tokens must be positive, got {self.max_tokens}",
            )
        if self.top_p is not None and not 0.0 <= self.top_p <= 1.0:
            raise ConfigurationError(
                f"top_p must be between 0 and 1, got {self.top_p}",
            )

    @classmethod
    def from_api_key(cls, api_key: str) -> Config:
        """Create a Config carrying only an API key."""
        return cls(api_key=api_key)

    @classmethod
    def from_environment(cls, provider: str) -> Config:
        """Build a Config from the provider's environment variables.

        Unknown providers read the generic ``<PROVIDER>_API_KEY`` variable.
        Ollama always gets a base URL, defaulting to the local daemon.
        """
        name = provider.lower()
        env_map = _ENV_VARS.get(name, {"api_key": (api_key_env_var(name),)})

        values: dict[str, Any] = {}
        for field_name, env_names in env_map.items():
            for env_name in env_names:
                value = os.environ.get(env_name)
                if value:
                    values[field_name] = value
                    break

        if name == "ollama":
            values.setdefault("base_url", DEFAULT_OLLAMA_HOST)
        return cls(**values)

    def merge(self, other: Config | None) -> Config:
        """Return a new Config where non-None fields of *other* win."""
        if other is None:
            return self
        merged = {
            f.name: (
                getattr(other, f.name)
                if getattr(other, f.name) is not None
                else getattr(self, f.name)
            )
            for f in fields(self)
        }
        return Config(**merged)

    def replace(self, **changes: Any) -> Config:
        """Return a copy with *changes* applied (validated again)."""
        return dataclasses.replace(self, **changes)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        shown = ", ".join(
            f"{f.name}={getattr(self, f.name)!r}"
            for f in fields(self)
            if f.name != "api_key" and getattr(self, f.name) is not None
        )
        redacted = "'[REDACTED]'" if self.api_key else None
        return f"Config(api_key={redacted}{', ' + shown if shown else ''})"

    __repr__ = __str__


def coerce_config(config: Config | str | None) -> Config:
    """Accept a Config, a bare API key, or None."""
    if config is None:
        return Config()
    if isinstance(config, str):
        return Config.from_api_key(config)
    if isinstance(config, Config):
        return config
    raise ConfigurationError(
        f"config must be a Config, an API key string or None, got {type(config).__name__}"
    )


def resolve_config(provider: str, config: Config | str | None) -> Config:
    """Environment-derived defaults for *provider*, overridden by explicit settings."""
    return Config.from_environment(provider).merge(coerce_config(config))
