"""Provider factory: route a model identifier to a backend constructor.

Resolution order for a model string:

1. ``"<provider>:<model>"`` routes explicitly to ``<provider>``.
2. Well-known model name patterns (``gpt-``, ``claude``, ``gemini``, ``solar-``).
3. Otherwise the whole lower-cased model string is the provider key, so a
   custom provider can be registered under a single name.

Registries are plain objects. ``default_registry`` is seeded with the
built-in backends; applications that want isolation construct their own
:class:`ProviderRegistry` and pass it around.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import threading
from typing import TYPE_CHECKING, TypeAlias

from llmhub.config import Config, coerce_config
from llmhub.errors import ConfigurationError, ProviderInitError, RoutingError
from llmhub.providers import AnthropicLLM, GoogleLLM, OllamaLLM, OpenAILLM, UpstageLLM

if TYPE_CHECKING:
    from collections.abc import Mapping

    from llmhub.llm import BaseLLM

logger = logging.getLogger(__name__)

#: ``factory(model, config)``; ``config`` is None when the caller gave none,
#: meaning "use environment-derived defaults".
ProviderFactory: TypeAlias = Callable[[str, "Config | None"], "BaseLLM"]

_BUILTIN_BACKENDS: tuple[type[BaseLLM], ...] = (
    OpenAILLM,
    AnthropicLLM,
    GoogleLLM,
    OllamaLLM,
    UpstageLLM,
)


def resolve_provider_key(model: str) -> str:
    """Return the registry key a model string routes to."""
    lower = model.lower()

    colon = lower.find(":")
    if colon > 0:
        return lower[:colon]

    if lower.startswith("gpt-") or "gpt-3.5" in lower or "gpt-4" in lower:
        return "openai"
    if "claude" in lower:
        return "anthropic"
    if "gemini" in lower:
        return "google"
    if lower.startswith("solar-"):
        return "upstage"
    return lower


def builtin_factory(backend: type[BaseLLM]) -> ProviderFactory:
    """Wrap a backend class, stripping its own ``"<provider>:"`` routing prefix."""
    prefix = f"{backend.provider_name}:"

    def factory(model: str, config: Config | None) -> BaseLLM:
        if model.lower().startswith(prefix):
            model = model[len(prefix) :]
        return backend(model, config)

    factory.__name__ = f"create_{backend.provider_name}"
    return factory


class ProviderRegistry:
    """Mutable map of provider key → constructor.

    Keys are lower-cased; the last registration for a key wins.
    """

    def __init__(self, providers: Mapping[str, ProviderFactory] | None = None) -> None:
        self._providers: dict[str, ProviderFactory] = {}
        self._lock = threading.Lock()
        for prefix, factory in (providers or {}).items():
            self.register(prefix, factory)

    @classmethod
    def with_defaults(cls) -> ProviderRegistry:
        """Create a registry holding every built-in backend."""
        registry = cls()
        for backend in _BUILTIN_BACKENDS:
            registry.register(backend.provider_name, builtin_factory(backend))
        return registry

    def register(self, prefix: str, factory: ProviderFactory) -> None:
        if not prefix or not prefix.strip():
            raise ConfigurationError("Provider prefix cannot be empty")
        if not callable(factory):
            raise ConfigurationError(f"Provider factory for {prefix!r} is not callable")
        with self._lock:
            self._providers[prefix.lower()] = factory
        logger.info("Registered LLM provider: %s", prefix)

    def unregister(self, prefix: str) -> None:
        with self._lock:
            removed = self._providers.pop(prefix.lower(), None)
        if removed is not None:
            logger.info("Unregistered LLM provider: %s", prefix)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._providers)

    def get(self, prefix: str) -> ProviderFactory | None:
        with self._lock:
            return self._providers.get(prefix.lower())

    def __contains__(self, prefix: object) -> bool:
        return isinstance(prefix, str) and self.get(prefix) is not None

    @staticmethod
    def resolve_key(model: str) -> str:
        return resolve_provider_key(model)

    def create(self, model: str | None, config: Config | str | None = None) -> BaseLLM:
        """Instantiate the backend *model* routes to.

        Raises:
            ConfigurationError: *model* is None or blank.
            RoutingError: no provider is registered for the resolved key.
            ProviderInitError: the provider constructor raised.
        """
        if model is None or not model.strip():
            raise ConfigurationError("Model name cannot be null or empty")

        key = resolve_provider_key(model)
        factory = self.get(key)
        if factory is None:
            available = self.keys()
            raise RoutingError(
                f"Unknown model: {model} (provider key {key!r}). "
                f"Available providers: {', '.join(available) or 'none'}",
                provider_key=key,
                available=available,
                hint="Use '<provider>:<model>' or register the provider with register_provider().",
            )

        resolved = coerce_config(config) if config is not None else None
        try:
            llm = factory(model, resolved)
        except Exception as e:
            raise ProviderInitError(
                f"Failed to create LLM instance for model: {model}",
                hint=getattr(e, "hint", None),
            ) from e
        logger.debug("Created %r via provider %s", llm, key)
        return llm


default_registry = ProviderRegistry.with_defaults()


def create(
    model: str | None,
    config: Config | str | None = None,
    *,
    registry: ProviderRegistry | None = None,
) -> BaseLLM:
    """Create a backend for *model*; *config* may be a Config, an API key, or None.

    Example:
        llm = create("gpt-4o-mini")
        local = create("ollama:llama2")
    """
    target = registry if registry is not None else default_registry
    return target.create(model, config)


def register_provider(
    prefix: str,
    factory: ProviderFactory,
    *,
    registry: ProviderRegistry | None = None,
) -> None:
    """Register *factory* under *prefix* (the default registry unless given)."""
    target = registry if registry is not None else default_registry
    target.register(prefix, factory)
