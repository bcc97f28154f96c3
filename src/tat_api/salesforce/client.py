"""Raw Salesforce REST calls: URL building, bearer auth, JSON bodies.

SalesforceClient does not refresh tokens. Each call reads the current token
from the TokenManager at send time, so a call replayed after a refresh picks
up the new token. Wrap calls with ``with_expiration_retry`` to get the
refresh-and-replay behavior.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.tat_api.errors import UpstreamError
from src.tat_api.salesforce.tokens import TokenManager

logger = structlog.get_logger(__name__)

# Only connection failures are retried: the request never reached Salesforce,
# so replaying a write cannot duplicate it.
_transport_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(httpx.ConnectError),
    reraise=True,
)


def parse_json_body(text: str) -> Any:
    """Parse a response body, treating an empty body as an empty object."""
    if text.strip() == "":
        return {}
    return json.loads(text)


class SalesforceClient:
    """Async client for the versioned Salesforce REST API.

    Args:
        tokens: Source of the current access token and instance URL.
        http_client: Shared httpx.AsyncClient.
        api_version: REST API version segment, e.g. "v44.0".
    """

    def __init__(
        self,
        tokens: TokenManager,
        http_client: httpx.AsyncClient,
        api_version: str = "v44.0",
    ) -> None:
        self._tokens = tokens
        self._http = http_client
        self._api_version = api_version

    @property
    def instance_url(self) -> str:
        return self._tokens.get_current_token().instance_url.rstrip("/")

    def build_url(self, segment: str) -> str:
        """Build the full URL for a path after /services/data/<version>/."""
        return f"{self.instance_url}/services/data/{self._api_version}/{segment.lstrip('/')}"

    async def get(self, segment: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", segment, params=params)

    async def post(self, segment: str, data: Any = None) -> Any:
        return await self._request("POST", segment, json_body=data if data is not None else {})

    async def patch(self, segment: str, data: Any = None) -> Any:
        return await self._request("PATCH", segment, json_body=data if data is not None else {})

    async def put(self, segment: str, data: Any = None) -> Any:
        return await self._request("PUT", segment, json_body=data if data is not None else {})

    async def delete(self, segment: str, data: Any = None) -> Any:
        return await self._request("DELETE", segment, json_body=data)

    async def composite_insert(
        self,
        records: list[dict[str, Any]],
        all_or_none: bool = True,
    ) -> list[dict[str, Any]]:
        """Create several sObjects in one call via composite/sobjects/.

        Each record must carry ``attributes.type``. Returns the per-record
        result list ({"id", "success", "errors"}) in request order.
        """
        return await self.post(
            "composite/sobjects/",
            {"allOrNone": all_or_none, "records": records},
        )

    @_transport_retry
    async def _request(
        self,
        method: str,
        segment: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send one authenticated request and decode its JSON body.

        Raises:
            UpstreamError: On any non-2xx status, or a 2xx body that is not JSON.
        """
        token = self._tokens.get_current_token()
        url = self.build_url(segment)
        headers = {"Authorization": f"Bearer {token.access_token}"}

        logger.debug("salesforce.request", method=method, url=url, params=params, body=json_body)

        # httpx only serializes a body when one is given, so GET stays bodiless
        content = None
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(json_body)

        response = await self._http.request(
            method,
            url,
            params=params,
            headers=headers,
            content=content,
        )
        text = response.text

        if not response.is_success:
            try:
                body = parse_json_body(text)
            except ValueError:
                body = None
            logger.warning(
                "salesforce.request_failed",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise UpstreamError(response.status_code, text, body)

        try:
            body = parse_json_body(text)
        except ValueError as exc:
            raise UpstreamError(
                response.status_code,
                text,
                message="Malformed JSON in Salesforce response",
            ) from exc

        logger.debug("salesforce.response", method=method, url=url, body=body)
        return body
