# =============================================================================
# 03_Customer_Detail.py - One customer's phones, addresses, notes and reminders
# =============================================================================
from __future__ import annotations
from datetime import datetime, time, timezone

import streamlit as st

from crm_core.ui.components import configure_page, header, show_query_error

configure_page("Customer", "📂")

from crm_core.auth.navigation import require_authentication, add_logout_button
require_authentication()
add_logout_button()

from crm_core.api.models import (
    AddressInput,
    AddressType,
    NOTE_MAX_LENGTH,
    PhoneDesignation,
    PhoneInput,
    ReminderInput,
    ReminderPriority,
)
from crm_core.errors.handlers import notify_failure, notify_success
from crm_core.state.session import get_context
from crm_core.sync import (
    use_customer,
    use_customer_addresses,
    use_customer_notes,
    use_customer_phones,
    use_customer_reminders,
)
from crm_core.views import (
    address_type_icon,
    due_label,
    format_address,
    format_date,
    get_initials,
    maps_url,
    priority_badge,
    relative_time,
    sort_reminders,
)

ctx = get_context()
customer_id = st.query_params.get("id") or st.session_state.get("selected_customer_id")

if not customer_id:
    st.info("Pick a customer first.")
    st.page_link("pages/02_Customers.py", label="Customers", icon="👥")
    st.stop()

customer_result = use_customer(ctx, customer_id)
customer = customer_result.data
show_query_error(customer_result, "this customer")
if customer is None:
    st.warning("Customer not found.")
    st.page_link("pages/02_Customers.py", label="Back to customers", icon="👥")
    st.stop()

header(
    customer.full_name,
    f"{customer.email} · customer since {format_date(customer.created_at)}" if customer.created_at else customer.email,
    icon=get_initials(customer.first_name, customer.last_name) or "👤",
)


def report(outcome, success_message: str):
    if outcome:
        notify_success(success_message)
        st.rerun()
    else:
        notify_failure(outcome.message)


phones_tab, addresses_tab, notes_tab, reminders_tab = st.tabs(
    ["📞 Phones", "🏠 Addresses", "📝 Notes", "⏰ Reminders"]
)

# ============================================================================
# PHONES
# ============================================================================
with phones_tab:
    phones = use_customer_phones(ctx, customer_id)
    show_query_error(phones, "phones")
    for phone in phones.items:
        c1, c2, c3 = st.columns([3, 1, 1])
        c1.markdown(f"**{phone.phone_number}**")
        c2.caption(phone.designation.value.capitalize())
        if c3.button("Delete", key=f"del_phone_{phone.id}", disabled=phones.is_busy(phone.id)):
            report(phones.delete(phone.id), "Phone removed")

    with st.form("add_phone", clear_on_submit=True):
        p1, p2 = st.columns([2, 1])
        number = p1.text_input("Phone number", placeholder="+15551234567")
        designation = p2.selectbox("Type", [d.value for d in PhoneDesignation])
        if st.form_submit_button("Add phone") and number.strip():
            report(phones.add(PhoneInput(number, PhoneDesignation(designation))), "Phone added")

# ============================================================================
# ADDRESSES
# ============================================================================
with addresses_tab:
    addresses = use_customer_addresses(ctx, customer_id)
    show_query_error(addresses, "addresses")
    for address in addresses.items:
        c1, c2 = st.columns([4, 1])
        c1.markdown(f"{address_type_icon(address.address_type)} **{address.address_type.value.capitalize()}**")
        c1.text(format_address(address))
        c1.markdown(f"[Open in maps]({maps_url(address)})")
        if c2.button("Delete", key=f"del_address_{address.id}", disabled=addresses.is_busy(address.id)):
            report(addresses.delete(address.id), "Address removed")

    with st.form("add_address", clear_on_submit=True):
        street = st.text_input("Street")
        a1, a2, a3 = st.columns(3)
        city = a1.text_input("City")
        state = a2.text_input("State / province")
        postal = a3.text_input("Postal code")
        country = st.text_input("Country")
        address_type = st.selectbox("Type", [t.value for t in AddressType])
        if st.form_submit_button("Add address"):
            data = AddressInput(
                address_line1=street.strip(),
                city=city.strip(),
                country=country.strip(),
                state_province=state.strip() or None,
                postal_code=postal.strip() or None,
                address_type=AddressType(address_type),
            )
            report(addresses.add(data), "Address added")

# ============================================================================
# NOTES
# ============================================================================
with notes_tab:
    notes = use_customer_notes(ctx, customer_id)
    show_query_error(notes, "notes")

    with st.form("add_note", clear_on_submit=True):
        text = st.text_area("New note", max_chars=NOTE_MAX_LENGTH)
        if st.form_submit_button("Add note"):
            report(notes.add(text), "Note added")

    for note in sorted(notes.items, key=lambda n: n.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True):
        with st.container(border=True):
            st.write(note.note)
            c1, c2 = st.columns([4, 1])
            if note.created_at:
                c1.caption(relative_time(note.created_at))
            if c2.button("Delete", key=f"del_note_{note.id}", disabled=notes.is_busy(note.id)):
                report(notes.delete(note.id), "Note deleted")

# ============================================================================
# REMINDERS
# ============================================================================
with reminders_tab:
    reminders = use_customer_reminders(ctx, customer_id)
    show_query_error(reminders, "reminders")

    for reminder in sort_reminders(reminders.items):
        c1, c2, c3 = st.columns([4, 1, 1])
        title = f"~~{reminder.description}~~" if reminder.completed else f"**{reminder.description}**"
        c1.markdown(f"{priority_badge(reminder.priority)} {title}")
        c1.caption("Completed" if reminder.completed else due_label(reminder.due_date))
        busy = reminders.is_busy(reminder.id)
        if reminder.completed:
            if c2.button("Reopen", key=f"reopen_{reminder.id}", disabled=busy):
                report(reminders.reopen(reminder.id), "Reminder reopened")
        elif c2.button("Complete", key=f"complete_{reminder.id}", disabled=busy):
            report(reminders.complete(reminder.id), "Reminder completed")
        if c3.button("Delete", key=f"del_reminder_{reminder.id}", disabled=busy):
            report(reminders.delete(reminder.id), "Reminder deleted")

    with st.form("add_reminder", clear_on_submit=True):
        description = st.text_input("Description")
        r1, r2, r3 = st.columns(3)
        due = r1.date_input("Due date", value=None)
        due_time = r2.time_input("Time (UTC)", value=time(9, 0))
        priority = r3.selectbox("Priority", [p.value for p in ReminderPriority], index=1)
        if st.form_submit_button("Add reminder"):
            due_at = datetime.combine(due, due_time, tzinfo=timezone.utc) if due else None
            data = ReminderInput(description, due_at, ReminderPriority(priority))
            report(reminders.add(data), "Reminder added")
