import pandas as pd
import streamlit as st

from crm_core.config import get_settings
from crm_core.errors.handlers import error_message_for
from crm_core.logging import setup_logging

# === COLOR PALETTE ===
PRIMARY_COLOR = "#667eea"
SUCCESS_COLOR = "#10b981"
WARNING_COLOR = "#f59e0b"
DANGER_COLOR = "#ef4444"
TEXT_COLOR = "#2c3e50"
SUBTLE_TEXT = "#495057"
GRID_COLOR = "#e5e7eb"
CARD_BG_LIGHT = "#ffffff"

STATUS_COLORS = {
    "Upcoming": PRIMARY_COLOR,
    "Overdue": DANGER_COLOR,
    "Completed": SUCCESS_COLOR,
}

_logging_ready = False


def configure_page(title: str, icon: str):
    """set_page_config plus one-time logging setup; call first on every page."""
    global _logging_ready
    st.set_page_config(page_title=f"{title} - CRM", page_icon=icon, layout="wide")
    if not _logging_ready:
        settings = get_settings()
        setup_logging(level=settings.log_level, log_to_file=settings.log_to_file)
        _logging_ready = True


def header(title: str, subtitle: str, icon: str = "📇"):
    st.markdown(f"## {icon} {title}")
    st.caption(subtitle)


def add_grid(fig):
    """Shared plot styling."""
    fig.update_xaxes(showgrid=True, gridcolor=GRID_COLOR, zeroline=False,
                     showline=True, linecolor=GRID_COLOR,
                     tickfont=dict(color=SUBTLE_TEXT), title_font=dict(color=TEXT_COLOR))
    fig.update_yaxes(showgrid=True, gridcolor=GRID_COLOR, zeroline=False,
                     showline=True, linecolor=GRID_COLOR,
                     tickfont=dict(color=SUBTLE_TEXT), title_font=dict(color=TEXT_COLOR))
    fig.update_layout(plot_bgcolor=CARD_BG_LIGHT, paper_bgcolor=CARD_BG_LIGHT,
                      font=dict(family="Segoe UI, sans-serif", size=12, color=TEXT_COLOR),
                      margin=dict(l=10, r=10, t=40, b=10))
    return fig


def show_query_error(result, what: str):
    """Warn about a failed read; any stale data is still rendered below."""
    if result.error is not None:
        st.warning(f"Could not refresh {what}: {error_message_for(result.error)}")


def render_sync_debug(ctx):
    """Sidebar toggle; in debug mode shows connection and cache state."""
    with st.sidebar:
        st.toggle("Debug mode", key="debug_mode")
        if not st.session_state.get("debug_mode"):
            return
        with st.expander("Sync status", expanded=True):
            st.json(ctx.monitor.as_dict())
            info = ctx.store.get_info()
            st.caption(f"{info['item_count']} cached keys")
            if info["items"]:
                st.dataframe(pd.DataFrame(info["items"]), hide_index=True, use_container_width=True)
