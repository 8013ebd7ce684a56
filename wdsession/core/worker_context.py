from contextvars import ContextVar
from dataclasses import dataclass, field

from wdsession.transport.session_cache import SessionCache


@dataclass
class WorkerContext:
    """
    Per-worker state. Each test worker owns exactly one SessionCache; reuse never crosses workers.
    """

    worker_id: str | None = None
    session_id: str | None = None
    module_key: str | None = None
    session_cache: SessionCache = field(default_factory=SessionCache)

    def __repr__(self) -> str:
        return f"WorkerContext(worker_id={self.worker_id}, session_id={self.session_id}, module_key={self.module_key})"

    def __str__(self) -> str:
        return self.__repr__()


_context: ContextVar[WorkerContext | None] = ContextVar(
    "Worker context",
    default=None,
)


def current() -> WorkerContext | None:
    """
    Get the current context

    Returns:
        The current context, or None if there is none
    """
    return _context.get()


def ensure_context() -> WorkerContext:
    """
    Get the current context, creating and setting a fresh one if there is none

    Returns:
        The current context
    """
    context = current()
    if context is None:
        context = WorkerContext()
        _context.set(context)
    return context


def set(context: WorkerContext) -> None:
    """
    Set the current context

    Args:
        context: The context to set

    Returns:
        None
    """
    _context.set(context)


def reset() -> None:
    """
    Reset the current context

    Returns:
        None
    """
    _context.set(None)
