import threading
from typing import Callable, Dict, List, Optional

import streamlit as st
from streamlit import runtime
from streamlit.runtime.scriptrunner import get_script_run_ctx

from crm_core.errors.handlers import background_error_notifier
from crm_core.logging import get_logger
from crm_core.sync import SyncContext

logger = get_logger(__name__)

# Central registry for session-state keys used across the app.
SESSION_DEFAULTS = {
    "sync_context": None,
    "customer_sort": "name",
    "customer_sort_ascending": True,
    "customer_search": "",
    "selected_customer_id": None,
    "reminder_search": "",
    "reminder_priority": "all",
    "reminder_customer": "all",
    "debug_mode": False,
}


class ContextRegistry:
    """
    Process-wide record of which browser session owns which SyncContext.

    Streamlit drops a closed tab's session state without telling anyone, so
    the context's polling and health-check threads would run forever. Every
    script run reaps the contexts of sessions the runtime no longer knows.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._contexts: Dict[str, SyncContext] = {}

    def __len__(self) -> int:
        return len(self._contexts)

    def add(self, session_id: str, ctx: SyncContext) -> None:
        with self._lock:
            self._contexts[session_id] = ctx

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._contexts.pop(session_id, None)

    def reap(self, is_active: Callable[[str], bool]) -> List[str]:
        """Shut down contexts whose session has ended; returns their session ids."""
        with self._lock:
            ended = [sid for sid in self._contexts if not is_active(sid)]
            contexts = [self._contexts.pop(sid) for sid in ended]

        for sid, ctx in zip(ended, contexts):
            try:
                ctx.shutdown()
            except Exception as e:
                logger.error(f"Shutting down context of ended session {sid} failed: {e}")
        if ended:
            logger.info(f"Stopped background work of {len(ended)} ended session(s)")
        return ended


_registry = ContextRegistry()


def current_session_id() -> Optional[str]:
    """Id of the browser session running this script, None outside a script run."""
    script_ctx = get_script_run_ctx()
    return script_ctx.session_id if script_ctx is not None else None


def session_is_active(session_id: str) -> bool:
    if not runtime.exists():
        return True
    return runtime.get_instance().is_active_session(session_id)


def init_state():
    """Initialize session state with defaults."""
    for k, v in SESSION_DEFAULTS.items():
        if k not in st.session_state:
            st.session_state[k] = v


def get_context() -> SyncContext:
    """
    The sync context of the current browser session.

    Each session signs in separately, so each gets its own auth session and
    cache; it is created on first use and started right away.
    """
    init_state()
    _registry.reap(session_is_active)

    ctx = st.session_state["sync_context"]
    if ctx is None:
        ctx = SyncContext()
        ctx.store.on_error = background_error_notifier
        ctx.start()
        st.session_state["sync_context"] = ctx
        session_id = current_session_id()
        if session_id is not None:
            _registry.add(session_id, ctx)
    return ctx


def clear_session():
    """Sign out and reset every session key to its default."""
    ctx = st.session_state.get("sync_context")
    if ctx is not None:
        ctx.auth.sign_out()
        ctx.shutdown()
        session_id = current_session_id()
        if session_id is not None:
            _registry.discard(session_id)

    for k, v in SESSION_DEFAULTS.items():
        st.session_state[k] = v
