"""OpenTelemetry spans around gate operations.

Spans carry the tenant, user and capability of the call, never record
contents or policy conditions. Without an SDK configured the tracer is a
no-op.
"""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

T = TypeVar("T")

_tracer = trace.get_tracer("rbac_engine")

# Argument names copied onto spans as rbac.<name>.
_SPAN_ARGS = ("tenant_id", "user_id", "resource", "action")


def _call_attributes(signature: inspect.Signature, args: tuple, kwargs: dict) -> dict[str, str]:
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return {}
    attrs: dict[str, str] = {}
    for name, value in bound.arguments.items():
        if name in _SPAN_ARGS and value is not None:
            attrs[f"rbac.{name}"] = str(value)
        elif name == "context":
            # UserContext: identity only, never the precomputed map or attributes.
            for field in ("tenant_id", "user_id"):
                if getattr(value, field, None) is not None:
                    attrs[f"rbac.{field}"] = str(getattr(value, field))
    return attrs


def traced(
    name: str | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Wrap a coroutine function in a span named ``name`` (default module.qualname).

    Exceptions mark the span as an error and propagate unchanged.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        span_name = name or f"{func.__module__}.{func.__qualname__}"
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            with _tracer.start_as_current_span(
                span_name, attributes=_call_attributes(signature, args, kwargs)
            ) as span:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span (no-op when not recording)."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)
