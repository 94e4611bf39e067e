"""Map vendor SDK and httpx exceptions into APIError.

Backends only need three things from a failure: the HTTP status (when the
transport exposed one), whether it was a rate limit, and a pointer to the
credential variable when the key was rejected.
"""

from __future__ import annotations

from llmhub.config import api_key_env_var
from llmhub.errors import APIError, RateLimitError, _walk_exception_chain

_AUTH_STATUS_CODES = frozenset({401, 403})


def _as_status(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return None


def extract_status_code(exc: BaseException) -> int | None:
    """First HTTP status found on *exc*, its ``response``, or its cause chain.

    openai/anthropic errors carry ``status_code``, google-genai errors
    ``code``, and ``httpx.HTTPStatusError`` only ``response.status_code``.
    """
    for e in _walk_exception_chain(exc):
        for candidate in (
            getattr(e, "status_code", None),
            getattr(e, "code", None),
            getattr(getattr(e, "response", None), "status_code", None),
        ):
            status = _as_status(candidate)
            if status is not None:
                return status
    return None


def credential_hint(provider: str, status_code: int | None) -> str | None:
    if status_code in _AUTH_STATUS_CODES:
        return (
            f"Check the API key (set {api_key_env_var(provider)} "
            "or pass Config(api_key=...))."
        )
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
) -> APIError:
    """Return an APIError describing *exc*; HTTP 429 becomes RateLimitError.

    An APIError raised by the backend itself is returned with missing
    ``provider``/``phase`` filled in.
    """
    if isinstance(exc, APIError):
        exc.provider = exc.provider or provider
        exc.phase = exc.phase or phase
        return exc

    status_code = extract_status_code(exc)
    error_cls = RateLimitError if status_code == 429 else APIError
    text = message or f"{provider} {phase} failed"
    if status_code is not None:
        text = f"{text} (status={status_code})"
    if str(exc):
        text = f"{text}: {exc}"
    return error_cls(
        text,
        hint=credential_hint(provider, status_code),
        provider=provider,
        status_code=status_code,
        phase=phase,
    )
