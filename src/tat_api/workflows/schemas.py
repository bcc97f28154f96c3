"""Request payload and per-request context for the post-outreach report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostOutreachReportRequest(BaseModel):
    """Body of createPostOutreachReport (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    outreach_location_id: str = Field(alias="outreachLocationId")
    completion_date: str = Field(alias="completionDate")
    total_hours: float = Field(alias="totalHours")
    accomplishments: list[str] = Field(default_factory=list)
    other_accomplishments: str = Field(default="", alias="otherAccomplishments")
    will_follow_up: bool = Field(default=False, alias="willFollowUp")
    follow_up_date: str = Field(default="", alias="followUpDate")
    contact_first_name: str = Field(default="", alias="contactFirstName")
    contact_last_name: str = Field(alias="contactLastName")
    contact_title: str = Field(default="", alias="contactTitle")
    contact_email: str = Field(default="", alias="contactEmail")
    contact_phone: str = Field(default="", alias="contactPhone")

    @field_validator("outreach_location_id")
    @classmethod
    def strip_quotes(cls, value: str) -> str:
        stripped = value.replace("'", "").replace('"', "")
        if not stripped:
            raise ValueError("outreachLocationId must not be empty")
        return stripped

    @field_validator("other_accomplishments", "follow_up_date", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


@dataclass
class AccountAndContact:
    account_id: str
    contact_id: str


@dataclass
class WorkflowContext:
    """Intermediate results threaded through one report submission."""

    firebase_id_token: str
    payload: PostOutreachReportRequest
    firebase_uid: str | None = None
    volunteer_contact_id: str | None = None
    location: dict[str, Any] = field(default_factory=dict)
    volunteer: dict[str, Any] = field(default_factory=dict)
    campaign_owner: dict[str, Any] = field(default_factory=dict)
    account_and_contact: AccountAndContact | None = None
    opportunities: list[dict[str, Any]] = field(default_factory=list)

    @property
    def campaign_id(self) -> str:
        return self.location.get("Campaign__c") or ""

    @property
    def volunteer_name(self) -> str:
        return f"{self.volunteer.get('FirstName') or ''} {self.volunteer.get('LastName') or ''}".strip()
