"""
Structured event logging for the soil engine.

Events are single-line JSON documents tagged with the trace id of the
request or batch that produced them. ``trace_scope`` opens a trace for a
unit of work; ``propagate_trace`` carries the current one into worker
threads.
"""

from __future__ import annotations

import functools
import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar, Union
from uuid import uuid4


EVENT_LOGGER_NAME = "soil_engine.events"
_NO_TRACE = "untraced"
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_trace_id: ContextVar[str] = ContextVar("soil_engine_trace_id", default=_NO_TRACE)
_event_logger = logging.getLogger(EVENT_LOGGER_NAME)
_configured = False

_F = TypeVar("_F", bound=Callable[..., Any])


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def init_logging(
    *, log_path: Optional[str] = None, level: Union[int, str] = logging.INFO
) -> None:
    """Attach a stream or rotating-file handler once per process."""
    global _configured
    if _configured:
        return
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = RotatingFileHandler(
            path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
    else:
        handler = logging.StreamHandler()
    resolved = _resolve_level(level)
    logging.basicConfig(level=resolved, format=_LOG_FORMAT, handlers=[handler])
    _event_logger.setLevel(resolved)
    _configured = True


def get_trace_id() -> str:
    return _trace_id.get() or _NO_TRACE


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Run the enclosed block under ``trace_id``, or a fresh one when omitted."""
    active = trace_id or uuid4().hex
    token = _trace_id.set(active)
    try:
        yield active
    finally:
        _trace_id.reset(token)


def propagate_trace(func: _F) -> _F:
    """Bind the caller's trace id so ``func`` logs under it on another thread."""
    trace_id = get_trace_id()

    @functools.wraps(func)
    def _traced(*args: Any, **kwargs: Any) -> Any:
        with trace_scope(trace_id):
            return func(*args, **kwargs)

    return _traced  # type: ignore[return-value]


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    if not _event_logger.isEnabledFor(level):
        return
    document = {"event": event, "trace_id": get_trace_id()}
    document.update(fields)
    _event_logger.log(level, json.dumps(document, ensure_ascii=True, default=str))
