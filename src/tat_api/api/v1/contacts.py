"""Contact and campaign lookups for the signed-in volunteer."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from src.tat_api.api.deps import get_container, get_post_data, require_id_token
from src.tat_api.container import ServiceContainer
from src.tat_api.errors import ValidationError

router = APIRouter(tags=["contacts"])


def require_field(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if not value:
        raise ValidationError(f"`{name}` must be present in the POST parameters.")
    return str(value)


async def _caller_contact_id(data: dict[str, Any], container: ServiceContainer) -> str:
    firebase_uid = await container.verifier.verify(require_id_token(data))
    return await container.resolver.resolve(firebase_uid)


@router.post("/getContactId")
async def get_contact_id(
    data: dict[str, Any] = Depends(get_post_data),
    container: ServiceContainer = Depends(get_container),
):
    """Return the caller's Contact Id, or FIREBASE_USER_NOT_IN_SALESFORCE."""
    return {"contactId": await _caller_contact_id(data, container)}


@router.post("/getActiveCampaigns")
async def get_active_campaigns(
    data: dict[str, Any] = Depends(get_post_data),
    container: ServiceContainer = Depends(get_container),
):
    contact_id = await _caller_contact_id(data, container)
    return await container.campaigns.get_active_campaigns(contact_id)


@router.post("/getTeamCoordinators")
async def get_team_coordinators(
    data: dict[str, Any] = Depends(get_post_data),
    container: ServiceContainer = Depends(get_container),
):
    await container.verifier.verify(require_id_token(data))
    account_id = require_field(data, "accountId").replace("'", "").replace('"', "")
    return await container.campaigns.get_team_coordinators(account_id)


@router.post("/addToCampaign")
async def add_to_campaign(
    data: dict[str, Any] = Depends(get_post_data),
    container: ServiceContainer = Depends(get_container),
):
    """Add the caller to a campaign. Joining twice is not an error."""
    campaign_id = require_field(data, "campaignId")
    contact_id = await _caller_contact_id(data, container)
    await container.campaigns.add_contact_to_campaign(contact_id, campaign_id)
    return {"success": True}
