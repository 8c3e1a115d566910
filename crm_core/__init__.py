"""
crm_core - data layer for the CRM dashboard.

Holds everything below the Streamlit pages: configuration, logging, errors,
the backend API client, the auth session, the keyed cache with its
revalidation machinery, the data hooks and the derived view models.
"""

__version__ = "0.3.0"
