# =============================================================================
# 01_Dashboard.py - Reminder overview
# =============================================================================
from __future__ import annotations
import streamlit as st
import plotly.express as px

from crm_core.ui.components import (
    configure_page, header, add_grid, show_query_error, render_sync_debug, STATUS_COLORS,
)

configure_page("Dashboard", "📊")

# ============================================================================
# AUTHENTICATION CHECK
# ============================================================================
from crm_core.auth.navigation import require_authentication, add_logout_button
user = require_authentication()
add_logout_button()

from crm_core.errors.handlers import error_boundary
from crm_core.state.session import get_context
from crm_core.sync import use_all_reminders, use_customers, use_reminder_stats
from crm_core.views.formatting import due_label, priority_badge
from crm_core.views.tables import due_timeline, status_breakdown

ctx = get_context()
render_sync_debug(ctx)
header("Dashboard", f"Welcome back, {user.display_name or user.email}")

stats_result = use_reminder_stats(ctx)
stats = stats_result.data
customers = use_customers(ctx)
reminders = use_all_reminders(ctx, include="customer")

show_query_error(stats_result, "reminder analytics")
show_query_error(reminders.result, "reminders")

# ============================================================================
# KPI CARDS
# ============================================================================
c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Customers", len(customers.data))
c2.metric("Reminders", stats.total)
c3.metric("Active", stats.active)
c4.metric("Overdue", stats.overdue)
c5.metric("Completion rate", f"{stats.completion_rate:.0f}%")

# ============================================================================
# CHARTS
# ============================================================================
@error_boundary(error_message="Could not draw the status chart")
def render_status_chart(stats):
    breakdown = status_breakdown(stats)
    if breakdown["Count"].sum() == 0:
        st.info("No reminders yet.")
        return
    fig = px.pie(
        breakdown, names="Status", values="Count", hole=0.5,
        color="Status", color_discrete_map=STATUS_COLORS,
    )
    st.plotly_chart(add_grid(fig), use_container_width=True)


@error_boundary(error_message="Could not draw the due-date chart")
def render_due_timeline(reminders):
    timeline = due_timeline(reminders)
    if timeline.empty:
        st.info("No active reminders.")
        return
    fig = px.bar(
        timeline, x="Day", y="Count", color="Bucket",
        color_discrete_map=STATUS_COLORS,
    )
    st.plotly_chart(add_grid(fig), use_container_width=True)


left, right = st.columns(2)

with left:
    st.subheader("By status")
    render_status_chart(stats)

with right:
    st.subheader("Due dates")
    render_due_timeline(reminders.reminders)

# ============================================================================
# NEXT UP
# ============================================================================
st.subheader("Needs attention")
attention = (reminders.overdue + reminders.upcoming)[:5]
if not attention:
    st.success("Nothing due. 🎉")
for row in attention:
    customer = row.customer.full_name if row.customer else "Unknown Customer"
    st.markdown(
        f"{priority_badge(row.priority)} **{row.description}** · {customer} · {due_label(row.due_date)}"
    )
st.page_link("pages/04_Reminders.py", label="All reminders", icon="⏰")
