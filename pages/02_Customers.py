# =============================================================================
# 02_Customers.py - Customer list, search, create and delete
# =============================================================================
from __future__ import annotations
import streamlit as st

from crm_core.ui.components import configure_page, header, show_query_error

configure_page("Customers", "👥")

from crm_core.auth.navigation import require_authentication, add_logout_button
require_authentication()
add_logout_button()

from crm_core.api.models import AddressInput, AddressType, CustomerCreate, PhoneDesignation, PhoneInput
from crm_core.errors.handlers import notify_failure, notify_success
from crm_core.state.session import get_context
from crm_core.sync import CustomerMutations, use_customer_search, use_customers
from crm_core.views import SORT_FIELDS, is_valid_email, sort_customers
from crm_core.views.tables import customers_frame

# Shorter queries are not sent to the server
MIN_SEARCH_LENGTH = 2

ctx = get_context()
mutations = CustomerMutations(ctx)
header("Customers", "Everyone you keep in touch with")

# ============================================================================
# SEARCH & SORT
# ============================================================================
c1, c2, c3 = st.columns([3, 1, 1])
query = c1.text_input("Search", key="customer_search", placeholder="Name, email or phone")
sort_by = c2.selectbox("Sort by", SORT_FIELDS, key="customer_sort", format_func=str.capitalize)
ascending = c3.toggle("Ascending", key="customer_sort_ascending")

if len(query.strip()) >= MIN_SEARCH_LENGTH:
    result = use_customer_search(ctx, query)
    what = "search results"
else:
    result = use_customers(ctx)
    what = "customers"
show_query_error(result, what)

customers = sort_customers(result.data, by=sort_by, ascending=ascending)

# ============================================================================
# TABLE
# ============================================================================
if not customers:
    st.info("No customers match." if what == "search results" else "No customers yet.")
else:
    df = customers_frame(customers)
    event = st.dataframe(
        df.drop(columns=["id"]),
        hide_index=True,
        use_container_width=True,
        on_select="rerun",
        selection_mode="single-row",
        column_config={"Joined": st.column_config.DateColumn("Joined", format="MMM D, YYYY")},
    )
    selected_rows = event.selection.rows if event is not None else []
    if selected_rows:
        selected = customers[selected_rows[0]]
        a, b = st.columns([1, 1])
        if a.button(f"Open {selected.full_name}", icon="📂"):
            st.session_state["selected_customer_id"] = selected.id
            st.switch_page("pages/03_Customer_Detail.py")
        if b.button(f"Delete {selected.full_name}", icon="🗑️", type="secondary"):
            outcome = mutations.delete(selected.id)
            if outcome:
                notify_success(f"Deleted {selected.full_name}")
                st.rerun()
            else:
                notify_failure(outcome.message, "Failed to delete customer")

# ============================================================================
# CREATE
# ============================================================================
with st.expander("➕ New customer"):
    with st.form("new_customer", clear_on_submit=True):
        n1, n2 = st.columns(2)
        first_name = n1.text_input("First name")
        last_name = n2.text_input("Last name")
        email = st.text_input("Email")

        p1, p2 = st.columns([2, 1])
        phone = p1.text_input("Phone (optional)", placeholder="+15551234567")
        designation = p2.selectbox("Type", [d.value for d in PhoneDesignation])

        st.markdown("**Address (optional)**")
        street = st.text_input("Street")
        a1, a2, a3 = st.columns(3)
        city = a1.text_input("City")
        state = a2.text_input("State / province")
        postal = a3.text_input("Postal code")
        country = st.text_input("Country")
        address_type = st.selectbox("Address type", [t.value for t in AddressType])

        submitted = st.form_submit_button("Create customer")

    if submitted:
        if not (first_name.strip() and last_name.strip() and email.strip()):
            st.error("First name, last name and email are required")
        elif not is_valid_email(email.strip()):
            st.error("Please enter a valid email address")
        else:
            data = CustomerCreate(first_name=first_name, last_name=last_name, email=email)
            if phone.strip():
                data.phones.append(PhoneInput(phone, PhoneDesignation(designation)))
            if street.strip() or city.strip() or country.strip():
                data.addresses.append(AddressInput(
                    address_line1=street.strip(),
                    city=city.strip(),
                    country=country.strip(),
                    state_province=state.strip() or None,
                    postal_code=postal.strip() or None,
                    address_type=AddressType(address_type),
                ))
            outcome = mutations.create(data)
            if outcome:
                notify_success(f"Created {outcome.data.full_name}")
                st.rerun()
            else:
                notify_failure(outcome.message, "Failed to create customer")
