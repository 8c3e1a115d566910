"""
CRM client facade
One object bundling every backend client over a shared HTTP session
"""
from __future__ import annotations
from typing import Optional

import requests

from crm_core.config import Settings, get_settings

from .base_client import APIConfig, TokenProvider
from .customer_client import CustomerAPI
from .reminder_client import ReminderAPI
from .user_client import HealthAPI, UserAPI


class CRMClient:
    """
    Usage:
        client = CRMClient.from_settings(token_provider=session.get_id_token)
        customers = client.customers.get_all()
        stats = client.reminders.get_analytics()
    """

    def __init__(
        self,
        config: APIConfig,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.customers = CustomerAPI(config, token_provider, self.session)
        self.reminders = ReminderAPI(config, token_provider, self.session)
        self.users = UserAPI(config, token_provider, self.session)
        self.health = HealthAPI(config, token_provider, self.session)

    @classmethod
    def from_settings(
        cls,
        token_provider: Optional[TokenProvider] = None,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ) -> CRMClient:
        settings = settings or get_settings()
        config = APIConfig(
            api_name="CRM backend",
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )
        return cls(config, token_provider=token_provider, session=session)

    def close(self) -> None:
        self.session.close()
