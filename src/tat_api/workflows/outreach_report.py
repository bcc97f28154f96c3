"""createPostOutreachReport: mark an outreach location complete and follow up in Salesforce.

Task graph (each line is one wave; steps in a wave run concurrently):

    resolve_identity
    patch_location
    fetch_location, fetch_volunteer
    resolve_campaign_owner
    update_campaign_opportunity, make_account_and_contact
    create_opportunities
    notify

Failures abort the remaining waves. Mutations already made in Salesforce stay
in place. A failed notification is only logged because everything before it
has been committed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import structlog

from src.tat_api.errors import BatchCreateError
from src.tat_api.identity.firebase import FirebaseVerifier
from src.tat_api.identity.resolver import ContactResolver
from src.tat_api.notifications.gmail import NotificationSender
from src.tat_api.salesforce.campaigns import CampaignService
from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.query import QueryPaginator, escape_single_quotes
from src.tat_api.salesforce.retry import RequestOrchestrator
from src.tat_api.workflows.graph import Step, TaskGraph
from src.tat_api.workflows.rules import ACCOUNT_TYPES, build_opportunity_records, format_qas
from src.tat_api.workflows.schemas import (
    AccountAndContact,
    PostOutreachReportRequest,
    WorkflowContext,
)

logger = structlog.get_logger(__name__)

LOCATION_SOBJECT = "TAT_App_Outreach_Location__c"
LOCATION_FIELDS = (
    "Id", "Name", "Contact_Email__c", "Contact_First_Name__c", "Contact_Last_Name__c",
    "Contact_Phone__c", "Contact_Title__c", "Country__c", "State__c", "City__c",
    "Street__c", "Zip__c", "Type__c", "Campaign__c",
)
VOLUNTEER_FIELDS = ("FirstName", "LastName")

SUCCESS_RESPONSE = {"success": True}
NOTIFICATION_SUBJECT = "Post-outreach report completed"


class PostOutreachReportWorkflow:
    """Runs one post-outreach report submission end to end.

    Args:
        verifier: Firebase ID token verifier.
        resolver: Firebase uid -> Contact Id resolver.
        client: Raw Salesforce client.
        orchestrator: Expiration-retry policy.
        paginator: SOQL query runner.
        campaigns: Campaign lookups.
        notifier: Sender for the summary email.
        today: Date source for Opportunity close dates.
    """

    def __init__(
        self,
        verifier: FirebaseVerifier,
        resolver: ContactResolver,
        client: SalesforceClient,
        orchestrator: RequestOrchestrator,
        paginator: QueryPaginator,
        campaigns: CampaignService,
        notifier: NotificationSender,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._verifier = verifier
        self._resolver = resolver
        self._client = client
        self._orchestrator = orchestrator
        self._paginator = paginator
        self._campaigns = campaigns
        self._notifier = notifier
        self._today = today
        self.graph = TaskGraph[WorkflowContext](
            "post_outreach_report",
            [
                Step("resolve_identity", self._resolve_identity),
                Step("patch_location", self._patch_location, ("resolve_identity",)),
                Step("fetch_location", self._fetch_location, ("patch_location",)),
                Step("fetch_volunteer", self._fetch_volunteer, ("patch_location",)),
                Step("resolve_campaign_owner", self._resolve_campaign_owner, ("fetch_location",)),
                Step(
                    "update_campaign_opportunity",
                    self._update_campaign_opportunity,
                    ("resolve_campaign_owner",),
                ),
                Step(
                    "make_account_and_contact",
                    self._make_account_and_contact,
                    ("resolve_campaign_owner",),
                ),
                Step(
                    "create_opportunities",
                    self._create_opportunities,
                    ("update_campaign_opportunity", "make_account_and_contact", "fetch_volunteer"),
                ),
                Step("notify", self._notify, ("create_opportunities",)),
            ],
        )

    async def run(self, firebase_id_token: str, payload: PostOutreachReportRequest) -> dict[str, Any]:
        context = WorkflowContext(firebase_id_token=firebase_id_token, payload=payload)
        logger.info(
            "outreach_report.started",
            outreach_location_id=payload.outreach_location_id,
        )
        await self.graph.run(context)
        logger.info(
            "outreach_report.completed",
            outreach_location_id=payload.outreach_location_id,
            opportunity_count=len(context.opportunities),
        )
        return dict(SUCCESS_RESPONSE)

    # ── Steps ────────────────────────────────────────────────────────────────

    async def _resolve_identity(self, ctx: WorkflowContext) -> str:
        ctx.firebase_uid = await self._verifier.verify(ctx.firebase_id_token)
        ctx.volunteer_contact_id = await self._resolver.resolve(ctx.firebase_uid)
        return ctx.volunteer_contact_id

    async def _patch_location(self, ctx: WorkflowContext) -> None:
        payload = ctx.payload
        misc_answers = format_qas(
            ("Other accomplishments:", payload.other_accomplishments),
            ("Do you plan to follow up with your contact?", "Yes" if payload.will_follow_up else "No"),
            ("When will you follow up?", payload.follow_up_date),
        )
        data = {
            "Is_Completed__c": True,
            "Completion_Date__c": payload.completion_date,
            "Total_Man_Hours__c": payload.total_hours,
            "Accomplishments__c": ";".join(payload.accomplishments),
            "Post_Outreach_Report_Submitted_By__c": ctx.volunteer_contact_id,
            "Misc_Post_Outreach_Report_Answers__c": misc_answers,
        }
        await self._orchestrator.with_expiration_retry(
            lambda: self._client.patch(f"sobjects/{LOCATION_SOBJECT}/{payload.outreach_location_id}", data)
        )

    async def _fetch_location(self, ctx: WorkflowContext) -> dict[str, Any]:
        ctx.location = await self._orchestrator.with_expiration_retry(
            lambda: self._client.get(
                f"sobjects/{LOCATION_SOBJECT}/{ctx.payload.outreach_location_id}",
                {"fields": ",".join(LOCATION_FIELDS)},
            )
        )
        return ctx.location

    async def _fetch_volunteer(self, ctx: WorkflowContext) -> dict[str, Any]:
        ctx.volunteer = await self._orchestrator.with_expiration_retry(
            lambda: self._client.get(
                f"sobjects/Contact/{ctx.volunteer_contact_id}",
                {"fields": ",".join(VOLUNTEER_FIELDS)},
            )
        )
        return ctx.volunteer

    async def _resolve_campaign_owner(self, ctx: WorkflowContext) -> dict[str, Any]:
        ctx.campaign_owner = await self._campaigns.get_campaign_owner(ctx.campaign_id)
        return ctx.campaign_owner

    async def _update_campaign_opportunity(self, ctx: WorkflowContext) -> str | None:
        """Close/win the campaign's volunteer-event Opportunity and add the hours."""
        records = await self._paginator.run_query(
            "SELECT Id, Hours_volunteered__c FROM Opportunity "
            f"WHERE Volunteer_Event_Campaign__c = '{escape_single_quotes(ctx.campaign_id)}'"
        )
        if not records:
            return None
        opportunity = records[0]
        current_hours = float(opportunity.get("Hours_volunteered__c") or 0)
        await self._orchestrator.with_expiration_retry(
            lambda: self._client.patch(
                f"sobjects/Opportunity/{opportunity['Id']}",
                {
                    "StageName": "Closed/Won",
                    "Hours_volunteered__c": current_hours + ctx.payload.total_hours,
                },
            )
        )
        return opportunity["Id"]

    async def _make_account_and_contact(self, ctx: WorkflowContext) -> AccountAndContact:
        """Find or create the location's Account, then create its primary Contact."""
        location = ctx.location
        owner_id = ctx.campaign_owner["Id"]
        payload = ctx.payload

        existing = await self._paginator.run_query(
            "SELECT Id FROM Account WHERE "
            f"Name = '{escape_single_quotes(location.get('Name') or '')}' "
            f"AND BillingState = '{escape_single_quotes(location.get('State__c') or '')}' "
            f"AND BillingCity = '{escape_single_quotes(location.get('City__c') or '')}' "
            f"AND BillingStreet = '{escape_single_quotes(location.get('Street__c') or '')}'"
        )
        if existing:
            account_id = existing[0]["Id"]
        else:
            account_fields = {
                "Name": location.get("Name"),
                "OwnerId": owner_id,
                "Type": ACCOUNT_TYPES.get(location.get("Type__c")),
                "BillingCountry": location.get("Country__c"),
                "BillingStreet": location.get("Street__c"),
                "BillingCity": location.get("City__c"),
                "BillingState": location.get("State__c"),
                "BillingPostalCode": location.get("Zip__c"),
            }
            logger.info("outreach_report.creating_account", name=location.get("Name"))
            new_account = await self._orchestrator.with_expiration_retry(
                lambda: self._client.post("sobjects/Account", account_fields)
            )
            account_id = new_account["id"]

        contact_fields = {
            "FirstName": payload.contact_first_name,
            "LastName": payload.contact_last_name,
            "Title": payload.contact_title,
            "npe01__Preferred_Email__c": "Work",
            "npe01__PreferredPhone__c": "Work",
            "npe01__Primary_Address_Type__c": "Work",
            "MailingCountry": location.get("Country__c"),
            "MailingStreet": location.get("Street__c"),
            "MailingCity": location.get("City__c"),
            "MailingState": location.get("State__c"),
            "MailingPostalCode": location.get("Zip__c"),
            "AccountId": account_id,
            "OwnerId": owner_id,
        }
        if payload.contact_email:
            contact_fields["npe01__WorkEmail__c"] = payload.contact_email
        if payload.contact_phone:
            contact_fields["npe01__WorkPhone__c"] = payload.contact_phone

        new_contact = await self._orchestrator.with_expiration_retry(
            lambda: self._client.post("sobjects/Contact", contact_fields)
        )
        contact_id = new_contact["id"]

        await self._orchestrator.with_expiration_retry(
            lambda: self._client.patch(
                f"sobjects/Account/{account_id}",
                {"npe01__One2OneContact__c": contact_id},
            )
        )
        ctx.account_and_contact = AccountAndContact(account_id=account_id, contact_id=contact_id)
        return ctx.account_and_contact

    async def _create_opportunities(self, ctx: WorkflowContext) -> list[dict[str, Any]]:
        """Create the accomplishment Opportunities in one all-or-none call."""
        records = build_opportunity_records(
            account_id=ctx.account_and_contact.account_id,
            contact_id=ctx.account_and_contact.contact_id,
            owner_id=ctx.campaign_owner["Id"],
            location=ctx.location,
            volunteer_name=ctx.volunteer_name,
            accomplishments=ctx.payload.accomplishments,
            other_accomplishments=ctx.payload.other_accomplishments,
            today=self._today(),
        )
        if not records:
            return []

        responses = await self._orchestrator.with_expiration_retry(
            lambda: self._client.composite_insert(records, all_or_none=True)
        )
        if not responses or not responses[0].get("success"):
            raise BatchCreateError(responses)
        ctx.opportunities = responses
        return responses

    async def _notify(self, ctx: WorkflowContext) -> bool:
        """Best effort: every sender failure is downgraded to a warning."""
        to_address = ctx.campaign_owner.get("Username", "")
        try:
            await self._notifier.send(to_address, NOTIFICATION_SUBJECT, self.build_summary(ctx))
        except Exception as exc:
            logger.warning(
                "outreach_report.notification_failed",
                to=to_address,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        return True

    def build_summary(self, ctx: WorkflowContext) -> str:
        """Summary email body with links to every record the report touched."""
        base = f"{self._client.instance_url}/lightning/r"
        location = ctx.location
        account_id = ctx.account_and_contact.account_id
        contact_id = ctx.account_and_contact.contact_id
        parts = [
            f"<p>Outreach completed at {location.get('Name', '')}. View the "
            f"<a href='{base}/{LOCATION_SOBJECT}/{location.get('Id', '')}/view'>TAT App Outreach Location</a>"
            " in Salesforce to see the responses to the post-outreach report.</p>",
            f"<p>View the <a href='{base}/Account/{account_id}/view'>Account</a> related to this location</p>",
            f"<p>View the <a href='{base}/Contact/{contact_id}/view'>primary Contact</a> for the Account</p>",
        ]
        parts.extend(
            f"<p><a href='{base}/Opportunity/{opportunity.get('id')}/view'>Opportunity {index}</a></p>"
            for index, opportunity in enumerate(ctx.opportunities, start=1)
        )
        return "".join(parts)
