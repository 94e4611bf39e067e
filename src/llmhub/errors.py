"""Exception hierarchy for llmhub."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class LLMHubError(Exception):
    """Base exception for all llmhub errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(LLMHubError):
    """Configuration validation or resolution failed."""


class RoutingError(LLMHubError):
    """No provider is registered for the resolved provider key."""

    def __init__(
        self,
        message: str,
        *,
        provider_key: str,
        available: Iterable[str] = (),
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.provider_key = provider_key
        self.available = sorted(available)


class ProviderInitError(LLMHubError):
    """A registered provider constructor failed; see ``__cause__``."""


class InvalidStateError(LLMHubError):
    """Operation requires state that has not been set up (e.g. conversation mode)."""


class CacheError(LLMHubError):
    """Cache infrastructure failed."""


class APIError(LLMHubError):
    """A backend call failed.

    This is the single error shape callers see for any vendor failure. The
    original exception is kept as ``__cause__`` for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        model: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.model = model
        self.provider = provider
        self.status_code = status_code
        self.phase = phase


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


class StreamError(APIError):
    """A chunk stream terminated with an error."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
