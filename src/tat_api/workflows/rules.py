"""Field mappings and the accomplishment -> Opportunity rules table."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any

# Account.Type for each outreach location type
ACCOUNT_TYPES = {
    "cdlSchool": "CDL School",
    "truckingCompany": "Trucking Company",
    "truckStop": "Truck Stop/Travel Plaza",
}

# Opportunity RecordType ids in the org
RECORD_TYPE_IDS = {
    "distributionPoint": "012o0000000o2YcAAI",
    "registeredTatTrained": "012o0000000o2WMAAY",
    "otherInvolvement": "012o0000000o2WWAAY",
}

QA_SEPARATOR = "\n\n\n"


@dataclass(frozen=True)
class OpportunityTemplate:
    record_type: str
    label: str
    fields: tuple[tuple[str, Any], ...]


REGISTERED_TAT_TRAINED = OpportunityTemplate(
    record_type="registeredTatTrained",
    label="Registered TAT Trained",
    fields=(("Probability", 100), ("Total_trained__c", 0)),
)

DISTRIBUTION_POINT = OpportunityTemplate(
    record_type="distributionPoint",
    label="Distribution Point",
    fields=(("Probability", 100), ("Location_Type__c", "Truck stops")),
)

OTHER_INVOLVEMENT = OpportunityTemplate(
    record_type="otherInvolvement",
    label="OI: from Vol Dis Outreach",
    fields=(("Probability", 0),),
)

# (location type, accomplishment keyword) -> template
OPPORTUNITY_RULES: dict[tuple[str, str], OpportunityTemplate] = {
    ("truckStop", "willTrainEmployees"): REGISTERED_TAT_TRAINED,
    ("cdlSchool", "willUseTatTraining"): REGISTERED_TAT_TRAINED,
    ("truckingCompany", "willTrainDrivers"): REGISTERED_TAT_TRAINED,
    ("truckStop", "willDistributeMaterials"): DISTRIBUTION_POINT,
}


def format_qas(*qas: tuple[str, str]) -> str:
    """Render question/answer pairs as ``> question\\nanswer`` blocks."""
    return QA_SEPARATOR.join(f"> {question}\n{answer}" for question, answer in qas)


def add_one_month(day: date) -> date:
    """Same day next month, clamped to the month's last day."""
    year = day.year + (1 if day.month == 12 else 0)
    month = 1 if day.month == 12 else day.month + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def build_opportunity_records(
    *,
    account_id: str,
    contact_id: str,
    owner_id: str,
    location: dict[str, Any],
    volunteer_name: str,
    accomplishments: list[str],
    other_accomplishments: str = "",
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Build the composite-insert records for a completed outreach.

    One record per accomplishment matching a rule for the location's type,
    plus one Other Involvement record when ``other_accomplishments`` is set.
    Unknown or empty accomplishments produce nothing.
    """
    close_date = add_one_month(today or date.today())
    close_label = close_date.strftime("%m/%d/%Y")
    close_iso = datetime.combine(close_date, time(), tzinfo=timezone.utc).isoformat()
    volunteer_note = f"Volunteer who produced this opportunity: {volunteer_name}"
    location_type = location.get("Type__c")
    location_name = location.get("Name", "")

    base = {
        "attributes": {"type": "Opportunity"},
        "AccountId": account_id,
        "npsp__Primary_Contact__c": contact_id,
        "CloseDate": close_iso,
        "OwnerId": owner_id,
        "CampaignId": location.get("Campaign__c"),
        "StageName": "Prospecting",
        "Description": volunteer_note,
    }

    def from_template(template: OpportunityTemplate, **overrides: Any) -> dict[str, Any]:
        record = dict(base)
        record["RecordTypeId"] = RECORD_TYPE_IDS[template.record_type]
        record["Name"] = f"{location_name} - {template.label} - {close_label}"
        record.update(dict(template.fields))
        record.update(overrides)
        return record

    records = []
    for accomplishment in accomplishments:
        if not accomplishment:
            continue
        template = OPPORTUNITY_RULES.get((location_type, accomplishment))
        if template is not None:
            records.append(from_template(template))

    if other_accomplishments:
        records.append(
            from_template(
                OTHER_INVOLVEMENT,
                Description=f"{other_accomplishments}\n\n{volunteer_note}",
            )
        )
    return records
