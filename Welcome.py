from __future__ import annotations
import streamlit as st

from crm_core.auth import SignUpData
from crm_core.errors.handlers import notify_success
from crm_core.state.session import get_context
from crm_core.ui.components import configure_page, header
from crm_core.views.formatting import is_valid_email

# ============================================================================
# PAGE CONFIGURATION
# ============================================================================
configure_page("Sign in", "📇")

ctx = get_context()
auth = ctx.auth

header("CRM Dashboard", "Customers, contact details, notes and reminders in one place")

# ============================================================================
# SIGNED IN
# ============================================================================
if auth.is_authenticated:
    user = auth.current_user
    st.success(f"Signed in as **{user.display_name or user.email}**")
    col1, col2, col3 = st.columns(3)
    with col1:
        st.page_link("pages/01_Dashboard.py", label="Dashboard", icon="📊")
    with col2:
        st.page_link("pages/02_Customers.py", label="Customers", icon="👥")
    with col3:
        st.page_link("pages/04_Reminders.py", label="Reminders", icon="⏰")

    if st.button("Sign out"):
        auth.sign_out()
        st.rerun()
    st.stop()

# ============================================================================
# SIGN IN / SIGN UP
# ============================================================================
sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create account"])

with sign_in_tab:
    with st.form("sign_in_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", use_container_width=True)

    if submitted:
        if not email or not password:
            st.error("Please enter your email and password")
        else:
            with st.spinner("Signing in..."):
                result = auth.sign_in(email.strip(), password)
            if result.success:
                st.switch_page("pages/01_Dashboard.py")
            else:
                st.error(result.error)

with sign_up_tab:
    with st.form("sign_up_form"):
        display_name = st.text_input("Full name")
        new_email = st.text_input("Email", key="sign_up_email")
        new_password = st.text_input("Password", type="password", key="sign_up_password")
        confirm = st.text_input("Confirm password", type="password")
        created = st.form_submit_button("Create account", use_container_width=True)

    if created:
        data = SignUpData(email=new_email.strip(), password=new_password, display_name=display_name.strip())
        problems = data.problems()
        if data.email and not is_valid_email(data.email):
            problems.append("Please enter a valid email address")
        if new_password != confirm:
            problems.append("Passwords do not match")

        if problems:
            st.error(problems[0])
        else:
            with st.spinner("Creating your account..."):
                result = auth.sign_up(data)
            if result.success:
                notify_success("Account created")
                st.switch_page("pages/01_Dashboard.py")
            else:
                st.error(result.error)
