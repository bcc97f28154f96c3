"""Salesforce REST layer -- tokens, raw client, expiration retry, pagination.

Exports:
    AccessToken, TokenStore, TokenManager: OAuth token state and refresh.
    SalesforceClient: Raw authenticated REST calls.
    RequestOrchestrator: Single refresh-and-replay policy on session expiry.
    QueryPaginator: SOQL queries across nextRecordsUrl pages.
    CampaignService: Campaign membership and ownership lookups.
"""

from src.tat_api.salesforce.campaigns import CampaignService
from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.query import QueryPaginator, escape_single_quotes
from src.tat_api.salesforce.retry import RequestOrchestrator, is_session_expired
from src.tat_api.salesforce.tokens import AccessToken, TokenManager, TokenStore

__all__ = [
    "AccessToken",
    "CampaignService",
    "QueryPaginator",
    "RequestOrchestrator",
    "SalesforceClient",
    "TokenManager",
    "TokenStore",
    "escape_single_quotes",
    "is_session_expired",
]
