# =============================================================================
# 04_Reminders.py - Reminders across all customers
# =============================================================================
from __future__ import annotations

from datetime import datetime

import streamlit as st

from crm_core.ui.components import configure_page, header, show_query_error

configure_page("Reminders", "⏰")

from crm_core.auth.navigation import require_authentication, add_logout_button
require_authentication()
add_logout_button()

from crm_core.errors.handlers import notify_failure, notify_success
from crm_core.state.session import get_context
from crm_core.sync import ReminderActions, use_all_reminders, use_reminder_stats
from crm_core.api.models import ReminderPriority
from crm_core.views import (
    categorize_reminders, due_label, filter_reminders, priority_badge, to_reminder_rows,
)

ctx = get_context()
actions = ReminderActions(ctx)
header("Reminders", "Everything due across your customers")

view = use_all_reminders(ctx, include="customer")
stats = use_reminder_stats(ctx).data
show_query_error(view.result, "reminders")

c1, c2, c3, c4 = st.columns(4)
c1.metric("Active", stats.active)
c2.metric("Overdue", stats.overdue)
c3.metric("Completed", stats.completed)
c4.metric("Completion rate", f"{stats.completion_rate:.0f}%")

# ============================================================================
# FILTERS
# ============================================================================
rows = to_reminder_rows(view.reminders)
customer_names = {row.customer_id: row.customer_name for row in rows if row.customer_id}
customer_options = ["all"] + sorted(customer_names, key=lambda cid: customer_names[cid].casefold())
if st.session_state["reminder_customer"] not in customer_options:
    st.session_state["reminder_customer"] = "all"

f1, f2, f3 = st.columns([3, 1, 2])
f1.text_input("Search", key="reminder_search", placeholder="Description or customer")
f2.selectbox("Priority", ["all"] + [p.value for p in ReminderPriority], key="reminder_priority")
f3.selectbox(
    "Customer", customer_options, key="reminder_customer",
    format_func=lambda cid: "All customers" if cid == "all" else customer_names[cid],
)

shown = filter_reminders(
    rows,
    query=st.session_state["reminder_search"],
    priority=st.session_state["reminder_priority"],
    customer_id=st.session_state["reminder_customer"],
)
by_id = {row.id: row for row in shown}
# Day boundaries follow the server's local calendar
groups = categorize_reminders([row.reminder for row in shown], now=datetime.now().astimezone())
tabs = {
    f"Overdue ({len(groups.overdue)})": groups.overdue,
    f"Today ({len(groups.due_today)})": groups.due_today,
    f"Tomorrow ({len(groups.due_tomorrow)})": groups.due_tomorrow,
    f"This week ({len(groups.this_week)})": groups.this_week,
    f"Later ({len(groups.later)})": groups.later,
    f"Recently completed ({len(groups.recently_completed)})": groups.recently_completed,
    f"All ({len(shown)})": [row.reminder for row in shown],
}


def report(outcome, success_message: str):
    if outcome:
        notify_success(success_message)
        st.rerun()
    else:
        notify_failure(outcome.message)


for tab, (label, reminders) in zip(st.tabs(list(tabs)), tabs.items()):
    with tab:
        if not reminders:
            st.info("Nothing here.")
        for reminder in reminders:
            row = by_id[reminder.id]
            key = f"{label.split(' (')[0]}_{row.id}"
            with st.container(border=True):
                c1, c2, c3 = st.columns([5, 1, 1])
                title = f"~~{row.title}~~" if row.completed else f"**{row.title}**"
                c1.markdown(f"{priority_badge(row.reminder.priority)} {title}")
                status = "Completed" if row.completed else due_label(row.reminder.due_date)
                c1.caption(f"{row.customer_name} · {status}")

                busy = actions.is_busy(row.id)
                if row.completed:
                    if c2.button("Reopen", key=f"reopen_{key}", disabled=busy):
                        report(actions.reopen(row.customer_id, row.id), "Reminder reopened")
                elif c2.button("Complete", key=f"complete_{key}", disabled=busy):
                    report(actions.complete(row.customer_id, row.id), "Reminder completed")
                if c3.button("Delete", key=f"delete_{key}", disabled=busy):
                    report(actions.delete(row.customer_id, row.id), "Reminder deleted")
