"""Global handlers for exceptions nobody caught."""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger("app.exceptions")

# Per-thread fields (e.g. the request a worker is reading) added to crash reports.
_thread_context: Dict[int, Dict[str, object]] = {}
_context_lock = threading.Lock()


def set_thread_context(**fields: object) -> None:
    """Tag the current thread so an uncaught crash reports what it was doing."""
    with _context_lock:
        _thread_context.setdefault(threading.get_ident(), {}).update(fields)


def clear_thread_context() -> None:
    with _context_lock:
        _thread_context.pop(threading.get_ident(), None)


def _pop_context(ident: Optional[int]) -> str:
    with _context_lock:
        fields = _thread_context.pop(ident, None) if ident is not None else None
    if not fields:
        return ""
    return " [" + ", ".join(f"{key}={value}" for key, value in sorted(fields.items())) + "]"


def install_exception_hook() -> "_ExceptionHook":
    """Log uncaught exceptions from the main thread and from background threads."""

    hook = _ExceptionHook()
    hook.install()
    return hook


@dataclass
class _ExceptionHook:
    """Replaces sys/threading excepthooks; ``uninstall`` puts the previous ones back."""

    _previous_excepthook: Optional[Callable] = None
    _previous_thread_excepthook: Optional[Callable] = None

    def install(self) -> None:
        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._handle_exception

        self._previous_thread_excepthook = threading.excepthook
        threading.excepthook = self._handle_thread_exception  # type: ignore[assignment]

    def uninstall(self) -> None:
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
        if self._previous_thread_excepthook is not None:
            threading.excepthook = self._previous_thread_excepthook  # type: ignore[assignment]

    def _handle_exception(self, exc_type, exc_value, exc_traceback) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            logger.critical(
                "Unhandled exception%s: %s",
                _pop_context(threading.main_thread().ident),
                exc_value,
                exc_info=(exc_type, exc_value, exc_traceback),
            )
        if self._previous_excepthook:
            self._previous_excepthook(exc_type, exc_value, exc_traceback)

    def _handle_thread_exception(self, args: "threading.ExceptHookArgs") -> None:
        thread = args.thread
        thread_name = thread.name if thread is not None else "<unknown>"
        context = _pop_context(thread.ident if thread is not None else None)
        logger.critical(
            "Thread %s crashed%s: %s",
            thread_name,
            context,
            args.exc_value,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        if self._previous_thread_excepthook:
            self._previous_thread_excepthook(args)
