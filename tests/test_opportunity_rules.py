"""Tests for the accomplishment -> Opportunity rules and field helpers."""

from __future__ import annotations

from datetime import date

from src.tat_api.workflows.rules import (
    RECORD_TYPE_IDS,
    add_one_month,
    build_opportunity_records,
    format_qas,
)

TRUCK_STOP = {"Name": "Loves #12", "Type__c": "truckStop", "Campaign__c": "701A"}


def build(location=TRUCK_STOP, accomplishments=(), other="", today=date(2026, 3, 14)):
    return build_opportunity_records(
        account_id="001A",
        contact_id="003C",
        owner_id="005O",
        location=location,
        volunteer_name="Ada Lovelace",
        accomplishments=list(accomplishments),
        other_accomplishments=other,
        today=today,
    )


class TestBuildOpportunityRecords:
    def test_distribution_point_for_truck_stop(self):
        (record,) = build(accomplishments=["willDistributeMaterials"])

        assert record["attributes"] == {"type": "Opportunity"}
        assert record["RecordTypeId"] == RECORD_TYPE_IDS["distributionPoint"]
        assert record["Name"] == "Loves #12 - Distribution Point - 04/14/2026"
        assert record["Probability"] == 100
        assert record["Location_Type__c"] == "Truck stops"
        assert record["StageName"] == "Prospecting"
        assert record["AccountId"] == "001A"
        assert record["npsp__Primary_Contact__c"] == "003C"
        assert record["OwnerId"] == "005O"
        assert record["CampaignId"] == "701A"
        assert record["CloseDate"] == "2026-04-14T00:00:00+00:00"
        assert record["Description"] == "Volunteer who produced this opportunity: Ada Lovelace"

    def test_other_involvement_added_for_free_text(self):
        records = build(accomplishments=["willDistributeMaterials"], other="Hosted a lunch")

        assert len(records) == 2
        other = records[1]
        assert other["RecordTypeId"] == RECORD_TYPE_IDS["otherInvolvement"]
        assert other["Name"] == "Loves #12 - OI: from Vol Dis Outreach - 04/14/2026"
        assert other["Probability"] == 0
        assert other["Description"] == (
            "Hosted a lunch\n\nVolunteer who produced this opportunity: Ada Lovelace"
        )

    def test_registered_trained_per_location_type(self):
        cases = {
            "truckStop": "willTrainEmployees",
            "cdlSchool": "willUseTatTraining",
            "truckingCompany": "willTrainDrivers",
        }
        for location_type, accomplishment in cases.items():
            location = {**TRUCK_STOP, "Type__c": location_type}
            (record,) = build(location=location, accomplishments=[accomplishment])
            assert record["RecordTypeId"] == RECORD_TYPE_IDS["registeredTatTrained"]
            assert record["Total_trained__c"] == 0

    def test_keyword_for_other_location_type_is_ignored(self):
        location = {**TRUCK_STOP, "Type__c": "cdlSchool"}
        assert build(location=location, accomplishments=["willDistributeMaterials"]) == []

    def test_unknown_and_empty_accomplishments_produce_nothing(self):
        assert build(accomplishments=["", "somethingElse"]) == []


class TestHelpers:
    def test_add_one_month_clamps_to_month_end(self):
        assert add_one_month(date(2026, 1, 31)) == date(2026, 2, 28)
        assert add_one_month(date(2026, 12, 15)) == date(2027, 1, 15)

    def test_format_qas(self):
        assert format_qas(("Q1?", "A1"), ("Q2?", "A2")) == "> Q1?\nA1\n\n\n> Q2?\nA2"
