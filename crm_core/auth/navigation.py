"""
Navigation helpers: page-level sign-in guard and the sidebar account box.

Every page under ``pages/`` calls ``require_authentication()`` first and
``add_logout_button()`` after it.
"""

import streamlit as st

from crm_core.errors.handlers import ErrorContext
from crm_core.state.session import clear_session, get_context
from crm_core.views.formatting import get_initials

WELCOME_PAGE = "Welcome.py"


def require_authentication(redirect_to_welcome: bool = True):
    """
    Stop rendering the page unless someone is signed in.

    Returns:
        The signed-in AuthUser
    """
    user = get_context().auth.current_user
    if user is None:
        st.warning("🔒 Please sign in to access this page.")
        if redirect_to_welcome:
            st.page_link(WELCOME_PAGE, label="Go to sign in", icon="🔑")
        st.stop()
    return user


def add_logout_button():
    """Show the signed-in user and a sign-out button in the sidebar."""
    user = get_context().auth.current_user
    if user is None:
        return

    name = user.display_name or user.email
    first, _, last = name.partition(" ")
    with st.sidebar:
        st.markdown(f"**{get_initials(first, last)}** · {name}")
        if user.display_name:
            st.caption(user.email)
        if st.button("Sign out", key="sidebar_sign_out", use_container_width=True):
            with ErrorContext("Signing out"):
                clear_session()
            st.switch_page(WELCOME_PAGE)
