from __future__ import annotations

from contextvars import ContextVar


_trace_id: ContextVar[str | None] = ContextVar("trace_id", default=None)
_session_id: ContextVar[str | None] = ContextVar("session_id", default=None)
_stage: ContextVar[str | None] = ContextVar("stage", default=None)
_errors: ContextVar[list[str] | None] = ContextVar("errors", default=None)


def bind_context(*, trace_id: str, session_id: str) -> None:
    _trace_id.set(trace_id)
    _session_id.set(session_id)
    _stage.set(None)
    _errors.set([])


def set_stage(stage: str) -> None:
    _stage.set(stage)


def add_error(message: str) -> None:
    errs = list(_errors.get() or [])
    errs.append(message)
    _errors.set(errs)


def errors() -> list[str]:
    return list(_errors.get() or [])


def snapshot() -> dict[str, object]:
    """Return a snapshot of the current research context for logging."""

    out: dict[str, object] = {}
    if (v := _trace_id.get()) is not None:
        out["trace_id"] = v
    if (v := _session_id.get()) is not None:
        out["session_id"] = v
    if (v := _stage.get()) is not None:
        out["stage"] = v
    errs = _errors.get()
    if errs:
        out["errors"] = list(errs)
    return out
