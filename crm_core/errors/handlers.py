# =============================================================================
# crm_core/errors/handlers.py
# User Feedback for Failures
# =============================================================================
"""
Turning exceptions into something the user sees.

Recoverable failures (the backend said no, the network dropped) become a
toast so the page keeps rendering. Anything marked unrecoverable is shown
inline with ``st.error``.
"""

from __future__ import annotations
import functools
import traceback
from typing import Any, Callable, Dict, NamedTuple, Optional, TypeVar
import streamlit as st

from crm_core.logging import get_logger
from .exceptions import CRMError

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_ERROR_MESSAGE = "An error occurred"
WARNING_ICON = "⚠️"
SUCCESS_ICON = "✅"


class _Failure(NamedTuple):
    code: str
    message: str
    details: Dict[str, Any]
    recoverable: bool


def error_message_for(error: BaseException, default: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Most specific user-facing message available for an error."""
    text = error.message if isinstance(error, CRMError) else str(error)
    return text or default


def _describe(error: BaseException, user_message: Optional[str]) -> _Failure:
    message = user_message or error_message_for(error)
    if isinstance(error, CRMError):
        return _Failure(error.code, message, error.details, error.recoverable)
    return _Failure("UNKNOWN", message, {"traceback": traceback.format_exc()}, True)


def handle_error(
    error: BaseException,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Log ``error`` and tell the user about it.

    ``user_message`` replaces the error's own text in both places.
    """
    failure = _describe(error, user_message)

    if log_error:
        logger.error(f"[{failure.code}] {failure.message}", extra={"details": failure.details})
    if not show_user_message:
        return

    if failure.recoverable:
        st.toast(failure.message, icon=WARNING_ICON)
    else:
        st.error(f"{failure.message}. The dashboard cannot continue until this is fixed.")

    if failure.details and st.session_state.get("debug_mode", False):
        with st.expander(f"Details ({failure.code})", expanded=False):
            st.json(failure.details)


def notify_success(message: str) -> None:
    st.toast(message, icon=SUCCESS_ICON)


def notify_failure(message: str, default: str = DEFAULT_ERROR_MESSAGE) -> None:
    """Toast for a mutation the backend rejected; empty messages use ``default``."""
    text = message or default
    logger.info(f"Mutation failed: {text}")
    st.toast(text, icon=WARNING_ICON)


def background_error_notifier(key: Any, error: BaseException) -> None:
    """
    ``on_error`` hook for the cache store.

    Runs on a pool thread with no script context, so nothing can be drawn;
    the stale data stays on screen and the failure goes to the log.
    """
    logger.warning(f"Background refresh of {key} failed: {error_message_for(error)}")


class ErrorContext:
    """
    Wraps a block that may fail; failures are reported and, when
    ``recoverable``, swallowed so the script keeps running.

    Usage:
        with ErrorContext("Signing out"):
            clear_session()
    """

    def __init__(self, operation: str, recoverable: bool = True):
        self.operation = operation
        self.recoverable = recoverable

    def __enter__(self) -> ErrorContext:
        logger.debug(f"{self.operation}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None:
            logger.debug(f"{self.operation} done")
            return False

        # CRM errors already carry a message meant for the user
        fallback = None if isinstance(exc_val, CRMError) else f"{self.operation} failed"
        handle_error(exc_val, user_message=fallback)
        return self.recoverable


def error_boundary(
    default_return: Any = None,
    error_message: Optional[str] = None,
    log: bool = True,
):
    """
    Decorator: a failing render function returns ``default_return`` and
    optionally toasts ``error_message`` instead of breaking the page.

    Usage:
        @error_boundary(error_message="Could not draw the status chart")
        def render_status_chart(stats):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log:
                    logger.exception(f"{func.__name__} failed: {e}")
                if error_message:
                    st.toast(error_message, icon=WARNING_ICON)
                return default_return

        return wrapper

    return decorator
