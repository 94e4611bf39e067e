"""Tools the model may call, and the registry that holds them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import threading
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from llmhub.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool execution."""

    success: bool
    output: str | None = None
    error: str | None = None
    metadata: Any = None

    @classmethod
    def ok(cls, output: str, metadata: Any = None) -> ToolResult:
        return cls(success=True, output=output, metadata=metadata)

    @classmethod
    def failure(cls, error: str) -> ToolResult:
        return cls(success=False, error=error)


@runtime_checkable
class Tool(Protocol):
    """A callable capability exposed to the model."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def schema(self) -> dict[str, Any]:
        """JSON Schema of the argument object."""
        ...

    @property
    def enabled(self) -> bool: ...

    def execute(self, args: dict[str, Any]) -> ToolResult: ...


class BaseTool(ABC):
    """Convenience base with an enable switch and execution logging."""

    def __init__(self, name: str, description: str) -> None:
        self._name = name
        self._description = description
        self._enabled = True

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value
        logger.info("Tool '%s' enabled: %s", self._name, value)

    def execute(self, args: dict[str, Any]) -> ToolResult:
        logger.debug("Executing tool '%s' with args: %s", self._name, args)
        result = self.run(args)
        if result.success:
            logger.debug("Tool '%s' executed successfully", self._name)
        else:
            logger.warning("Tool '%s' failed: %s", self._name, result.error)
        return result

    @abstractmethod
    def run(self, args: dict[str, Any]) -> ToolResult:
        """Perform the tool's work."""


class FunctionTool(BaseTool):
    """Expose a plain function as a tool.

    The function receives the argument object as keyword arguments; its
    return value is converted with ``str()``. Exceptions become failure
    results.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
        schema: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            name or func.__name__,
            description or (func.__doc__ or "").strip(),
        )
        self._func = func
        self._schema = schema

    @property
    def schema(self) -> dict[str, Any]:
        if self._schema is not None:
            return self._schema
        return super().schema

    def run(self, args: dict[str, Any]) -> ToolResult:
        try:
            value = self._func(**args)
        except Exception as e:
            return ToolResult.failure(f"{type(e).__name__}: {e}")
        return ToolResult.ok(str(value))


class ToolRegistry:
    """Name → tool mapping with enable/disable filtering."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        self._lock = threading.Lock()
        self.register_all(*tools)

    def register(self, tool: Tool) -> None:
        """Add *tool*, replacing any tool with the same name."""
        if tool is None:
            raise ConfigurationError("Tool cannot be None")
        name = tool.name
        if not name or not name.strip():
            raise ConfigurationError("Tool name cannot be empty")
        with self._lock:
            self._tools[name] = tool
        logger.info("Registered tool: %s", name)

    def register_all(self, *tools: Tool) -> None:
        for tool in tools:
            self.register(tool)

    def unregister(self, name: str) -> None:
        with self._lock:
            removed = self._tools.pop(name, None)
        if removed is not None:
            logger.info("Unregistered tool: %s", name)

    def get(self, name: str) -> Tool | None:
        with self._lock:
            return self._tools.get(name)

    def tools(self) -> list[Tool]:
        with self._lock:
            return list(self._tools.values())

    def enabled_tools(self) -> list[Tool]:
        return [t for t in self.tools() if t.enabled]

    def names(self) -> set[str]:
        with self._lock:
            return set(self._tools)

    def definitions(self) -> list[dict[str, Any]]:
        """Describe enabled tools as ``{"name", "description", "parameters"}`` dicts."""
        return [
            {"name": t.name, "description": t.description, "parameters": t.schema}
            for t in self.enabled_tools()
        ]

    def clear(self) -> None:
        with self._lock:
            self._tools.clear()
        logger.info("Cleared all tools from registry")

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)
