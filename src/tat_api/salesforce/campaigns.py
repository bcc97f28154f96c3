"""Campaign, campaign member, and coordinator lookups."""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog

from src.tat_api.errors import CampaignOwnerNotFoundError, UpstreamError
from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.query import QueryPaginator, Record, escape_single_quotes
from src.tat_api.salesforce.retry import RequestOrchestrator

logger = structlog.get_logger(__name__)

DUPLICATE_VALUE_ERROR_CODE = "DUPLICATE_VALUE"


class CampaignService:
    """Salesforce operations around campaigns and their members."""

    def __init__(
        self,
        client: SalesforceClient,
        orchestrator: RequestOrchestrator,
        paginator: QueryPaginator,
    ) -> None:
        self._client = client
        self._orchestrator = orchestrator
        self._paginator = paginator

    async def add_contact_to_campaign(self, contact_id: str, campaign_id: str) -> None:
        """Create a CampaignMember; an existing membership counts as success."""
        try:
            await self._orchestrator.with_expiration_retry(
                lambda: self._client.post(
                    "sobjects/CampaignMember/",
                    {"CampaignId": campaign_id, "ContactId": contact_id},
                )
            )
        except UpstreamError as exc:
            if exc.first_error_code() != DUPLICATE_VALUE_ERROR_CODE:
                raise
            logger.info(
                "campaigns.already_member",
                contact_id=contact_id,
                campaign_id=campaign_id,
            )

    async def get_campaign_owner(self, campaign_id: str) -> Record:
        """Return the owning User ({"Username", "Id"}) of a campaign.

        The Username field holds the owner's email address.
        """
        records = await self._paginator.run_query(
            "SELECT Username, Id FROM User WHERE Id IN "
            f"(SELECT OwnerId FROM Campaign WHERE Campaign.Id = '{escape_single_quotes(campaign_id)}')"
        )
        if not records:
            raise CampaignOwnerNotFoundError(campaign_id)
        return records[0]

    async def get_active_campaigns(self, contact_id: str, today: date | None = None) -> list[Record]:
        """Active campaigns the contact belongs to that have not ended."""
        today_iso = (today or date.today()).isoformat()
        return await self._paginator.run_query(
            "SELECT Id, Name, CreatedDate, EndDate, IsActive FROM Campaign "
            "WHERE Id IN (SELECT CampaignId FROM CampaignMember "
            f"WHERE CampaignMember.ContactId = '{escape_single_quotes(contact_id)}') "
            f"AND IsActive = true AND (EndDate = NULL OR EndDate >= {today_iso})"
        )

    async def get_team_coordinators(self, account_id: str) -> list[dict[str, Any]]:
        records = await self._paginator.run_query(
            "SELECT Id, FirstName, LastName from Contact "
            "WHERE TAT_App_Is_Team_Coordinator__c = true "
            f"AND AccountId = '{escape_single_quotes(account_id)}'"
        )
        return [
            {
                "name": f"{record.get('FirstName') or ''} {record.get('LastName') or ''}".strip(),
                "salesforceId": record["Id"],
            }
            for record in records
        ]
