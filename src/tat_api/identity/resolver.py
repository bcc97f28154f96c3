"""Resolve a Firebase uid to the caller's Salesforce Contact Id."""

from __future__ import annotations

from typing import Any

import structlog

from src.tat_api.errors import UnknownSubjectError
from src.tat_api.identity.cache import IdentityCache
from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.query import QueryPaginator, escape_single_quotes
from src.tat_api.salesforce.retry import RequestOrchestrator

logger = structlog.get_logger(__name__)


class ContactResolver:
    """Cache-first lookup of Contact Ids, falling back to a SOQL query."""

    def __init__(
        self,
        cache: IdentityCache,
        paginator: QueryPaginator,
        client: SalesforceClient,
        orchestrator: RequestOrchestrator,
    ) -> None:
        self._cache = cache
        self._paginator = paginator
        self._client = client
        self._orchestrator = orchestrator

    async def resolve(self, firebase_uid: str) -> str:
        """Return the Contact Id for ``firebase_uid``.

        Raises:
            UnknownSubjectError: If no Contact carries this Firebase uid.
        """
        cached = await self._cache.lookup(firebase_uid)
        if cached is not None:
            return cached

        records = await self._paginator.run_query(
            "SELECT Id from Contact WHERE TAT_App_Firebase_UID__c = "
            f"'{escape_single_quotes(firebase_uid)}'"
        )
        if not records:
            raise UnknownSubjectError(firebase_uid)

        contact_id = records[0]["Id"]
        logger.info("contact_resolver.resolved", firebase_uid=firebase_uid, contact_id=contact_id)
        await self._cache.store(firebase_uid, contact_id)
        return contact_id

    async def create_record_for_subject(
        self,
        firebase_uid: str,
        sobject: str,
        fields: dict[str, Any],
        contact_field: str | None = None,
    ) -> dict[str, Any]:
        """Create an sObject on behalf of a user that must have a Contact.

        Args:
            firebase_uid: The caller's Firebase uid.
            sobject: sObject API name, e.g. "Event".
            fields: Field values of the new record.
            contact_field: If given, the lookup field set to the caller's Contact Id.

        Returns:
            The Salesforce create response ({"id", "success", "errors"}).
        """
        contact_id = await self.resolve(firebase_uid)
        data = dict(fields)
        if contact_field:
            data[contact_field] = contact_id
        return await self._orchestrator.with_expiration_retry(
            lambda: self._client.post(f"sobjects/{sobject}/", data)
        )
