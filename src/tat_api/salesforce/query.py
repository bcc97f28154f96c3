"""SOQL query pagination over the query API."""

from __future__ import annotations

from typing import Any

import structlog

from src.tat_api.errors import PaginationLimitError, UpstreamError
from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.retry import RequestOrchestrator

logger = structlog.get_logger(__name__)

Record = dict[str, Any]


def escape_single_quotes(value: str) -> str:
    """Escape a value for interpolation inside a quoted SOQL literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def continuation_segment(next_records_url: str) -> str:
    """Strip ``/services/data/vXX.X/`` from a nextRecordsUrl."""
    index = next_records_url.find("query/")
    if index == -1:
        raise UpstreamError(200, next_records_url, message="Unexpected nextRecordsUrl in query response")
    return next_records_url[index:]


class QueryPaginator:
    """Drives a SOQL query to completion across ``nextRecordsUrl`` pages.

    Every page fetch goes through the expiration-retry policy on its own, so
    a token that expires mid-query only replays the page that failed.

    Args:
        client: Raw Salesforce client.
        orchestrator: Expiration-retry policy.
        max_pages: Upper bound on pages fetched per query, initial page included.
    """

    def __init__(
        self,
        client: SalesforceClient,
        orchestrator: RequestOrchestrator,
        max_pages: int = 50,
    ) -> None:
        self._client = client
        self._orchestrator = orchestrator
        self._max_pages = max_pages

    async def run_query(self, soql: str) -> list[Record]:
        """Return every record matching ``soql`` in server order.

        Raises:
            PaginationLimitError: If the query is still not done after
                ``max_pages`` pages.
        """
        response = await self._orchestrator.with_expiration_retry(
            lambda: self._client.get("query/", {"q": soql})
        )
        records: list[Record] = list(response.get("records", []))
        pages = 1

        while not response.get("done", True):
            if pages >= self._max_pages:
                logger.error("salesforce.query_page_limit", max_pages=self._max_pages, soql=soql)
                raise PaginationLimitError(self._max_pages)
            segment = continuation_segment(response.get("nextRecordsUrl") or "")
            response = await self._orchestrator.with_expiration_retry(
                lambda: self._client.get(segment)
            )
            records.extend(response.get("records", []))
            pages += 1

        logger.debug("salesforce.query_complete", pages=pages, record_count=len(records))
        return records
