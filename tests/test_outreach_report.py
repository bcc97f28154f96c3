"""End-to-end tests for the post-outreach report workflow over a fake Salesforce."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock

import pytest

from src.tat_api.errors import AuthError, BatchCreateError, NotificationError, UnknownSubjectError
from src.tat_api.identity.cache import IdentityCache, JsonFileCacheBackend
from src.tat_api.identity.firebase import FirebaseVerifier
from src.tat_api.identity.resolver import ContactResolver
from src.tat_api.salesforce.campaigns import CampaignService
from src.tat_api.workflows.outreach_report import NOTIFICATION_SUBJECT, PostOutreachReportWorkflow
from src.tat_api.workflows.rules import RECORD_TYPE_IDS
from src.tat_api.workflows.schemas import PostOutreachReportRequest
from tests.fakes import (
    EXPIRED_SESSION_BODY,
    INSTANCE_URL,
    LOCATION,
    LOCATION_ID,
    FakeSalesforce,
    install_happy_path,
    query_page,
)


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def workflow(tmp_path, http_client, sf_client, orchestrator, paginator, notifier):
    verifier = FirebaseVerifier(http_client, api_key="web-key", auth_base="https://identity.example/relyingparty")
    cache = IdentityCache(JsonFileCacheBackend(tmp_path / "contact-ids.json"))
    resolver = ContactResolver(cache, paginator, sf_client, orchestrator)
    campaigns = CampaignService(sf_client, orchestrator, paginator)
    return PostOutreachReportWorkflow(
        verifier=verifier,
        resolver=resolver,
        client=sf_client,
        orchestrator=orchestrator,
        paginator=paginator,
        campaigns=campaigns,
        notifier=notifier,
        today=lambda: date(2026, 3, 14),
    )


def make_payload(**overrides) -> PostOutreachReportRequest:
    data = {
        "outreachLocationId": LOCATION_ID,
        "completionDate": "2026-03-13",
        "totalHours": 3.5,
        "accomplishments": ["willDistributeMaterials"],
        "otherAccomplishments": "Hosted a lunch",
        "willFollowUp": True,
        "followUpDate": "2026-04-01",
        "contactFirstName": "Grace",
        "contactLastName": "Hopper",
        "contactTitle": "Manager",
        "contactEmail": "grace@loves.example",
        "contactPhone": "555-0100",
    }
    data.update(overrides)
    return PostOutreachReportRequest.model_validate(data)


class TestGraphShape:
    def test_waves(self, workflow):
        assert workflow.graph.waves == [
            ["resolve_identity"],
            ["patch_location"],
            ["fetch_location", "fetch_volunteer"],
            ["resolve_campaign_owner"],
            ["update_campaign_opportunity", "make_account_and_contact"],
            ["create_opportunities"],
            ["notify"],
        ]


class TestHappyPath:
    async def test_returns_success_literal(self, workflow, fake_sf):
        install_happy_path(fake_sf)

        assert await workflow.run("id-token", make_payload()) == {"success": True}

    async def test_location_is_marked_complete(self, workflow, fake_sf):
        install_happy_path(fake_sf)

        await workflow.run("id-token", make_payload())

        (patch,) = fake_sf.requests_to("PATCH", "TAT_App_Outreach_Location__c")
        body = FakeSalesforce.json_body(patch)
        assert body["Is_Completed__c"] is True
        assert body["Completion_Date__c"] == "2026-03-13"
        assert body["Total_Man_Hours__c"] == 3.5
        assert body["Accomplishments__c"] == "willDistributeMaterials"
        assert body["Post_Outreach_Report_Submitted_By__c"] == "003V"
        assert body["Misc_Post_Outreach_Report_Answers__c"] == (
            "> Other accomplishments:\nHosted a lunch\n\n\n"
            "> Do you plan to follow up with your contact?\nYes\n\n\n"
            "> When will you follow up?\n2026-04-01"
        )

    async def test_campaign_opportunity_is_closed_with_hours(self, workflow, fake_sf):
        install_happy_path(fake_sf)

        await workflow.run("id-token", make_payload())

        (patch,) = fake_sf.requests_to("PATCH", "sobjects/Opportunity/006E")
        assert FakeSalesforce.json_body(patch) == {"StageName": "Closed/Won", "Hours_volunteered__c": 5.5}

    async def test_account_contact_and_link_created(self, workflow, fake_sf):
        install_happy_path(fake_sf)

        await workflow.run("id-token", make_payload())

        (account,) = fake_sf.requests_to("POST", "sobjects/Account")
        account_body = FakeSalesforce.json_body(account)
        assert account_body["Type"] == "Truck Stop/Travel Plaza"
        assert account_body["OwnerId"] == "005O"
        assert account_body["BillingCity"] == "Amarillo"

        (contact,) = fake_sf.requests_to("POST", "sobjects/Contact")
        contact_body = FakeSalesforce.json_body(contact)
        assert contact_body["LastName"] == "Hopper"
        assert contact_body["AccountId"] == "001N"
        assert contact_body["npe01__WorkEmail__c"] == "grace@loves.example"
        assert contact_body["npe01__WorkPhone__c"] == "555-0100"

        (link,) = fake_sf.requests_to("PATCH", "sobjects/Account/001N")
        assert FakeSalesforce.json_body(link) == {"npe01__One2OneContact__c": "003N"}

    async def test_existing_account_is_reused(self, workflow, fake_sf):
        install_happy_path(fake_sf, existing_account=True)

        await workflow.run("id-token", make_payload())

        assert fake_sf.requests_to("POST", "sobjects/Account") == []
        (contact,) = fake_sf.requests_to("POST", "sobjects/Contact")
        assert FakeSalesforce.json_body(contact)["AccountId"] == "001X"
        assert len(fake_sf.requests_to("PATCH", "sobjects/Account/001X")) == 1

    async def test_opportunities_created_in_one_batch(self, workflow, fake_sf):
        install_happy_path(fake_sf)

        await workflow.run("id-token", make_payload())

        (batch,) = fake_sf.requests_to("POST", "composite/sobjects")
        body = FakeSalesforce.json_body(batch)
        assert body["allOrNone"] is True
        distribution, other = body["records"]
        assert distribution["RecordTypeId"] == RECORD_TYPE_IDS["distributionPoint"]
        assert distribution["AccountId"] == "001N"
        assert distribution["npsp__Primary_Contact__c"] == "003N"
        assert distribution["Name"] == "Loves #12 - Distribution Point - 04/14/2026"
        assert other["RecordTypeId"] == RECORD_TYPE_IDS["otherInvolvement"]
        assert other["Description"].endswith("Volunteer who produced this opportunity: Ada Lovelace")

    async def test_no_matching_accomplishments_skips_batch(self, workflow, fake_sf):
        install_happy_path(fake_sf)

        await workflow.run("id-token", make_payload(accomplishments=[], otherAccomplishments=""))

        assert fake_sf.requests_to("POST", "composite/sobjects") == []

    async def test_notification_sent_to_campaign_owner(self, workflow, fake_sf, notifier):
        install_happy_path(fake_sf)

        await workflow.run("id-token", make_payload())

        notifier.send.assert_awaited_once()
        to_address, subject, html = notifier.send.await_args.args
        assert to_address == "owner@tat.example"
        assert subject == NOTIFICATION_SUBJECT
        assert f"{INSTANCE_URL}/lightning/r/Account/001N/view" in html
        assert "/Opportunity/006A/view" in html
        assert "/Opportunity/006B/view" in html

    async def test_expired_session_mid_workflow_refreshes_once(self, workflow, fake_sf):
        install_happy_path(fake_sf)
        fake_sf.add(
            "GET", f"sobjects/TAT_App_Outreach_Location__c/{LOCATION_ID}",
            (401, EXPIRED_SESSION_BODY), LOCATION,
        )
        fake_sf.add("POST", "/services/oauth2/token", {"access_token": "new-token"})

        assert await workflow.run("id-token", make_payload()) == {"success": True}

        assert len(fake_sf.requests_to("POST", "oauth2/token")) == 1


class TestFailures:
    async def test_notification_failure_is_not_fatal(self, workflow, fake_sf, notifier):
        install_happy_path(fake_sf)
        notifier.send.side_effect = NotificationError("smtp down")

        assert await workflow.run("id-token", make_payload()) == {"success": True}

    async def test_unexpected_sender_error_is_not_fatal(self, workflow, fake_sf, notifier):
        install_happy_path(fake_sf)
        notifier.send.side_effect = RuntimeError("gmail client misconfigured")

        assert await workflow.run("id-token", make_payload()) == {"success": True}

        notifier.send.assert_awaited_once()

    async def test_batch_first_element_failure_raises(self, workflow, fake_sf, notifier):
        install_happy_path(fake_sf)
        fake_sf.add("POST", "composite/sobjects", [
            {"success": False, "errors": [{"statusCode": "REQUIRED_FIELD_MISSING"}]},
        ])

        with pytest.raises(BatchCreateError):
            await workflow.run("id-token", make_payload())

        notifier.send.assert_not_awaited()

    async def test_unknown_volunteer_stops_before_any_write(self, workflow, fake_sf):
        install_happy_path(fake_sf)
        fake_sf.add("GET", "query/", query_page([]), query_contains="TAT_App_Firebase_UID__c")

        with pytest.raises(UnknownSubjectError):
            await workflow.run("id-token", make_payload())

        assert fake_sf.requests_to("PATCH", "sobjects/") == []

    async def test_rejected_id_token_raises_auth_error(self, workflow, fake_sf):
        install_happy_path(fake_sf)
        fake_sf.add("POST", "getAccountInfo", (400, {"error": {"message": "INVALID_ID_TOKEN"}}))

        with pytest.raises(AuthError):
            await workflow.run("id-token", make_payload())

        assert len(fake_sf.requests) == 1
