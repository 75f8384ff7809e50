"""
Provider registry.

To add a new concert provider:
1. Subclass BaseProvider in <source>.py, setting source, display_name,
   base_url, credential_key and default_limit
2. Implement fetch_raw() and to_concert()
3. Register it in the PROVIDERS dict below and add its source name to
   concertsync.models.PROVIDER_SOURCES
"""

from concertsync import config as cfg_module
from concertsync.providers.bachtrack import BachtrackProvider
from concertsync.providers.bandsintown import BandsintownProvider
from concertsync.providers.base import BaseProvider
from concertsync.providers.eventbrite import EventbriteProvider
from concertsync.providers.ticketmaster import TicketMasterProvider

PROVIDERS: dict[str, type[BaseProvider]] = {
    "bachtrack": BachtrackProvider,
    "bandsintown": BandsintownProvider,
    "eventbrite": EventbriteProvider,
    "ticketmaster": TicketMasterProvider,
}


def build_provider(name: str, cfg: dict) -> BaseProvider:
    """Instantiate the provider registered under `name` with its config section and credential."""
    provider_cls = PROVIDERS[name]
    return provider_cls(
        cfg_module.get_provider_config(cfg, name),
        credential=cfg_module.get_secret(cfg, provider_cls.credential_key),
    )
