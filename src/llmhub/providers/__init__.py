"""Built-in provider backends."""

from .anthropic import AnthropicLLM
from .google import GoogleLLM
from .ollama import OllamaLLM
from .openai import OpenAILLM
from .upstage import UpstageLLM

__all__ = [
    "AnthropicLLM",
    "GoogleLLM",
    "OllamaLLM",
    "OpenAILLM",
    "UpstageLLM",
]
