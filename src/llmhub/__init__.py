"""llmhub: one client interface over several LLM vendors.

Public API:
    - create(): Build a backend from a model identifier
    - BaseLLM: ask / ask_async / ask_stream / chat
    - Config: Configuration dataclass
    - MemoryCache, FileCache: Reply caches
    - Conversation: Bounded chat history
    - ToolRegistry, FunctionTool: Tools the model may call
"""

from __future__ import annotations

import logging

from llmhub.cache import Cache, CacheStats, FileCache, MemoryCache, compute_cache_key
from llmhub.config import Config
from llmhub.conversation import Conversation
from llmhub.errors import (
    APIError,
    CacheError,
    ConfigurationError,
    InvalidStateError,
    LLMHubError,
    ProviderInitError,
    RateLimitError,
    RoutingError,
    StreamError,
)
from llmhub.factory import (
    ProviderRegistry,
    create,
    default_registry,
    register_provider,
)
from llmhub.llm import BaseLLM
from llmhub.tools import BaseTool, FunctionTool, Tool, ToolRegistry, ToolResult
from llmhub.types import Message, Reply, Role, StreamChunk, ToolCall, Usage

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("llmhub")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("llmhub").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "BaseLLM",
    "BaseTool",
    "Cache",
    "CacheError",
    "CacheStats",
    "Config",
    "ConfigurationError",
    "Conversation",
    "FileCache",
    "FunctionTool",
    "InvalidStateError",
    "LLMHubError",
    "MemoryCache",
    "Message",
    "ProviderInitError",
    "ProviderRegistry",
    "RateLimitError",
    "Reply",
    "Role",
    "RoutingError",
    "StreamChunk",
    "StreamError",
    "Tool",
    "ToolCall",
    "ToolRegistry",
    "ToolResult",
    "Usage",
    "compute_cache_key",
    "create",
    "default_registry",
    "register_provider",
]
