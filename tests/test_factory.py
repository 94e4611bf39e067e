"""Provider routing and registry behavior."""

from __future__ import annotations

import pytest

import llmhub
from llmhub.config import Config
from llmhub.errors import ConfigurationError, ProviderInitError, RoutingError
from llmhub.factory import (
    ProviderRegistry,
    create,
    default_registry,
    register_provider,
    resolve_provider_key,
)
from llmhub.providers import AnthropicLLM, GoogleLLM, OllamaLLM, OpenAILLM, UpstageLLM
from tests.helpers import ScriptedLLM

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("model", "key"),
    [
        ("gpt-4o-mini", "openai"),
        ("GPT-4-turbo", "openai"),
        ("ft:gpt-3.5-turbo:acme", "ft"),
        ("azure-gpt-4", "openai"),
        ("claude-3-opus", "anthropic"),
        ("my-claude-finetune", "anthropic"),
        ("gemini-1.5-pro", "google"),
        ("solar-1-mini-chat", "upstage"),
        ("ollama:llama2", "ollama"),
        ("OpenAI:o1-preview", "openai"),
        ("llama2", "llama2"),
        (":leading-colon", ":leading-colon"),
    ],
)
def test_resolve_provider_key(model: str, key: str) -> None:
    assert resolve_provider_key(model) == key
    assert ProviderRegistry.resolve_key(model) == key


def test_default_registry_knows_every_builtin() -> None:
    assert default_registry.keys() == ["anthropic", "google", "ollama", "openai", "upstage"]
    assert "OpenAI" in default_registry


@pytest.mark.parametrize(
    ("model", "cls"),
    [
        ("gpt-4o-mini", OpenAILLM),
        ("claude-3-opus", AnthropicLLM),
        ("gemini-1.5-flash", GoogleLLM),
        ("solar-1-mini-chat", UpstageLLM),
    ],
)
def test_create_routes_to_builtin_backends(model: str, cls: type) -> None:
    llm = create(model, "test-key")
    assert isinstance(llm, cls)
    assert llm.model == model
    assert llm.config.api_key == "test-key"


def test_create_strips_explicit_provider_prefix() -> None:
    llm = create("ollama:llama2")
    assert isinstance(llm, OllamaLLM)
    assert llm.model == "llama2"

    openai_llm = create("openai:o1-mini", Config(api_key="k"))
    assert isinstance(openai_llm, OpenAILLM)
    assert openai_llm.model == "o1-mini"


def test_create_reads_api_key_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
    llm = create("claude-3-haiku")
    assert llm.config.api_key == "env-key"


def test_create_without_api_key_is_a_provider_init_error() -> None:
    with pytest.raises(ProviderInitError) as exc:
        create("gpt-4o-mini")
    assert isinstance(exc.value.__cause__, ConfigurationError)
    assert "OPENAI_API_KEY" in (exc.value.hint or "")


def test_unknown_model_is_a_routing_error() -> None:
    with pytest.raises(RoutingError) as exc:
        create("unknown-model-xyz")
    err = exc.value
    assert "Unknown model: unknown-model-xyz" in str(err)
    assert err.provider_key == "unknown-model-xyz"
    assert "openai" in err.available


@pytest.mark.parametrize("model", [None, "", "   "])
def test_blank_model_is_a_configuration_error(model: str | None) -> None:
    with pytest.raises(ConfigurationError):
        create(model)


def test_custom_provider_receives_model_unchanged() -> None:
    registry = ProviderRegistry.with_defaults()
    seen: list[tuple[str, Config | None]] = []

    def factory(model: str, config: Config | None) -> ScriptedLLM:
        seen.append((model, config))
        return ScriptedLLM(model, config)

    register_provider("Mock", factory, registry=registry)

    llm = create("mock:tiny", registry=registry)
    assert isinstance(llm, ScriptedLLM)
    assert seen == [("mock:tiny", None)]

    create("mock", "key", registry=registry)
    assert seen[-1][1] == Config(api_key="key")

    # The process-wide registry is untouched.
    assert "mock" not in default_registry


def test_custom_provider_can_override_a_builtin() -> None:
    registry = ProviderRegistry.with_defaults()
    registry.register("openai", lambda model, config: ScriptedLLM(model, config))
    assert isinstance(registry.create("gpt-4o"), ScriptedLLM)


def test_factory_failure_is_wrapped() -> None:
    boom = RuntimeError("no GPU")

    def broken(model: str, config: Config | None) -> ScriptedLLM:
        raise boom

    registry = ProviderRegistry({"local": broken})
    with pytest.raises(ProviderInitError) as exc:
        registry.create("local:model")
    assert exc.value.__cause__ is boom
    assert "local:model" in str(exc.value)


def test_register_validation_and_unregister() -> None:
    registry = ProviderRegistry()
    with pytest.raises(ConfigurationError):
        registry.register("  ", lambda m, c: ScriptedLLM(m, c))
    with pytest.raises(ConfigurationError):
        registry.register("x", "not callable")  # type: ignore[arg-type]

    registry.register("X", lambda m, c: ScriptedLLM(m, c))
    assert registry.keys() == ["x"]
    registry.unregister("x")
    registry.unregister("x")
    assert registry.keys() == []


def test_empty_registry_error_lists_no_providers() -> None:
    with pytest.raises(RoutingError) as exc:
        ProviderRegistry().create("gpt-4")
    assert exc.value.available == []


def test_package_exports_factory() -> None:
    assert llmhub.create is create
    assert llmhub.default_registry is default_registry
    assert isinstance(llmhub.__version__, str)
