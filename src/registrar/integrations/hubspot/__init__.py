"""HubSpot integration -- forms/CRM client, deal pipeline table and deal sync.

Provides:
- HubSpotClient: Bearer-auth REST client (submissions, form definitions, CRM)
- DEAL_STAGE_TABLE / SALES_REP_OWNER_IDS: Static pipeline and owner configuration
- DealSyncService: Attendee outcome -> contact + deal + association
"""

from src.registrar.integrations.hubspot.client import HubSpotClient
from src.registrar.integrations.hubspot.deal_sync import DealSyncService
from src.registrar.integrations.hubspot.pipelines import (
    DEAL_STAGE_TABLE,
    SALES_REP_OWNER_IDS,
    load_deal_stage_table,
    resolve_deal_stage,
)

__all__ = [
    "HubSpotClient",
    "DealSyncService",
    "DEAL_STAGE_TABLE",
    "SALES_REP_OWNER_IDS",
    "load_deal_stage_table",
    "resolve_deal_stage",
]
