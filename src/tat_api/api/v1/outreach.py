"""POST /createPostOutreachReport."""

from __future__ import annotations

from typing import Any

import pydantic
import structlog
from fastapi import APIRouter, Depends

from src.tat_api.api.deps import get_container, get_post_data, require_id_token
from src.tat_api.container import ServiceContainer
from src.tat_api.errors import ValidationError
from src.tat_api.workflows.schemas import PostOutreachReportRequest

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["outreach"])


def parse_report(data: dict[str, Any]) -> PostOutreachReportRequest:
    try:
        return PostOutreachReportRequest.model_validate(data)
    except pydantic.ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) for error in exc.errors()
        )
        raise ValidationError(f"Missing or invalid fields: {fields}") from exc


@router.post("/createPostOutreachReport")
async def create_post_outreach_report(
    data: dict[str, Any] = Depends(get_post_data),
    container: ServiceContainer = Depends(get_container),
):
    """Mark an outreach location complete and record its follow-up in Salesforce."""
    id_token = require_id_token(data)
    payload = parse_report(data)
    logger.info(
        "command.create_post_outreach_report",
        outreach_location_id=payload.outreach_location_id,
    )
    return await container.post_outreach_report.run(id_token, payload)
