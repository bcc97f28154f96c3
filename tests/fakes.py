"""Fake Salesforce transport and canned query pages shared across tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

INSTANCE_URL = "https://tat.my.salesforce.com"
OAUTH_BASE = "https://login.salesforce.com/services/oauth2"
DATA_PREFIX = "/services/data/v44.0/"

EXPIRED_SESSION_BODY = [{"message": "Session expired or invalid", "errorCode": "INVALID_SESSION_ID"}]


@dataclass
class Route:
    method: str
    path: str
    query_contains: str | None
    responses: list[Any]
    calls: int = 0


@dataclass
class FakeSalesforce:
    """Routes requests to queued responses.

    A route matches on method, a substring of the URL path, and optionally a
    substring of the ``q`` query parameter. Responses are consumed in order;
    the last one repeats. A response is an httpx.Response, a ``(status, body)``
    tuple, a JSON-able body (status 200), or an exception instance to raise.
    """

    routes: list[Route] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def add(
        self,
        method: str,
        path: str,
        *responses: Any,
        query_contains: str | None = None,
    ) -> Route:
        route = Route(method.upper(), path, query_contains, list(responses))
        # Later registrations shadow earlier ones
        self.routes.insert(0, route)
        return route

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for route in self.routes:
            if route.method != request.method or route.path not in request.url.path:
                continue
            if route.query_contains is not None and route.query_contains not in request.url.params.get("q", ""):
                continue
            index = min(route.calls, len(route.responses) - 1)
            route.calls += 1
            return self._to_response(route.responses[index])
        return httpx.Response(404, json=[{"errorCode": "NOT_FOUND", "message": request.url.path}])

    @staticmethod
    def _to_response(item: Any) -> httpx.Response:
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, httpx.Response):
            return item
        if isinstance(item, tuple):
            status, body = item
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=item)

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and path in r.url.path]

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


def query_page(records: list[dict[str, Any]], done: bool = True, next_url: str | None = None) -> dict[str, Any]:
    page: dict[str, Any] = {"totalSize": len(records), "done": done, "records": records}
    if next_url:
        page["nextRecordsUrl"] = next_url
    return page


# ── Canned outreach location and a full successful report run ──────────────

LOCATION_ID = "a0L000000000001"
LOCATION = {
    "Id": LOCATION_ID,
    "Name": "Loves #12",
    "Type__c": "truckStop",
    "Campaign__c": "701C",
    "Country__c": "USA",
    "State__c": "TX",
    "City__c": "Amarillo",
    "Street__c": "1 Main St",
    "Zip__c": "79101",
}


def install_happy_path(fake_sf: FakeSalesforce, existing_account: bool = False) -> None:
    fake_sf.add("POST", "getAccountInfo", {"users": [{"localId": "uid-1"}]})
    fake_sf.add("GET", "query/", query_page([{"Id": "003V"}]), query_contains="TAT_App_Firebase_UID__c")
    fake_sf.add("PATCH", f"sobjects/TAT_App_Outreach_Location__c/{LOCATION_ID}", (204, ""))
    fake_sf.add("GET", f"sobjects/TAT_App_Outreach_Location__c/{LOCATION_ID}", LOCATION)
    fake_sf.add("GET", "sobjects/Contact/003V", {"FirstName": "Ada", "LastName": "Lovelace"})
    fake_sf.add("GET", "query/", query_page([{"Username": "owner@tat.example", "Id": "005O"}]), query_contains="FROM User")
    fake_sf.add(
        "GET", "query/",
        query_page([{"Id": "006E", "Hours_volunteered__c": 2}]),
        query_contains="FROM Opportunity",
    )
    fake_sf.add("PATCH", "sobjects/Opportunity/006E", (204, ""))
    fake_sf.add(
        "GET", "query/",
        query_page([{"Id": "001X"}] if existing_account else []),
        query_contains="FROM Account",
    )
    fake_sf.add("POST", "sobjects/Account", (201, {"id": "001N", "success": True, "errors": []}))
    fake_sf.add("POST", "sobjects/Contact", (201, {"id": "003N", "success": True, "errors": []}))
    fake_sf.add("PATCH", "sobjects/Account/", (204, ""))
    fake_sf.add("POST", "composite/sobjects", [
        {"id": "006A", "success": True, "errors": []},
        {"id": "006B", "success": True, "errors": []},
    ])
