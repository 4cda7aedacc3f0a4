"""Infrastructure helpers: logging and exception handling."""

from .exceptions import clear_thread_context, install_exception_hook, set_thread_context
from .logging import configure_logging

__all__ = ["clear_thread_context", "configure_logging", "install_exception_hook", "set_thread_context"]
