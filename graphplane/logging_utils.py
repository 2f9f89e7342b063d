from __future__ import annotations

import dataclasses
import logging
import reprlib
from functools import wraps
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_repr = reprlib.Repr()
_repr.maxother = 120
_repr.maxstring = 60
_repr.maxlist = 6
_repr.maxtuple = 6


def configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _is_coord(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 2
        and all(isinstance(v, (int, float)) for v in value)
    )


def summarize(value: Any, *, max_items: int = 4) -> str:
    """Return a short, log-friendly description of engine values.

    Coordinates print with fixed precision, elements print as ``Kind(id)``,
    arrays and long sequences print as a size summary.
    """

    if value is None:
        return "None"
    if _is_coord(value):
        return f"({value[0]:.4g}, {value[1]:.4g})"
    if isinstance(value, np.ndarray):
        if value.size == 0:
            return f"ndarray(shape={tuple(value.shape)})"
        return (
            f"ndarray(shape={tuple(value.shape)}, "
            f"min={float(np.nanmin(value)):.4g}, max={float(np.nanmax(value)):.4g})"
        )
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        ident = getattr(value, "id", None)
        name = type(value).__name__
        if ident is not None:
            return f"{name}({ident!r})"
        fields = ", ".join(
            f"{f.name}={summarize(getattr(value, f.name))}" for f in dataclasses.fields(value)[:max_items]
        )
        return f"{name}({fields})"
    if isinstance(value, Mapping):
        items = [f"{summarize(k)}: {summarize(v)}" for k, v in list(value.items())[:max_items]]
        if len(value) > max_items:
            items.append(f"... {len(value)} total")
        return "{" + ", ".join(items) + "}"
    if isinstance(value, (list, tuple)) and not isinstance(value, str):
        items = [summarize(item) for item in value[:max_items]]
        if len(value) > max_items:
            items.append(f"... {len(value)} total")
        return "[" + ", ".join(items) + "]"
    return _repr.repr(value)


def _format_arguments(args: Sequence[Any], kwargs: Mapping[str, Any]) -> str:
    parts = [summarize(arg) for arg in args]
    parts.extend(f"{key}={summarize(value)}" for key, value in kwargs.items())
    return ", ".join(parts) if parts else "no-args"


def debug_log_call(
    logger: logging.Logger, *, name: Optional[str] = None, log_result: bool = True
) -> Callable[[F], F]:
    """Return a decorator that emits DEBUG logs on entry and exit."""

    def decorator(func: F) -> F:
        qualname = name or getattr(func, "__qualname__", getattr(func, "__name__", "<callable>"))

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Entering %s (%s)", qualname, _format_arguments(args, kwargs))
            result = func(*args, **kwargs)
            if logger.isEnabledFor(logging.DEBUG):
                if log_result:
                    logger.debug("Exiting %s -> %s", qualname, summarize(result))
                else:
                    logger.debug("Exiting %s", qualname)
            return result

        return cast(F, wrapper)

    return decorator
