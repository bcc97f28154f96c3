"""FastAPI dependencies: the service container and POST body parsing.

The mobile app posts either JSON or form-encoded bodies, so endpoints read
the raw request instead of declaring a Pydantic body parameter.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import Request

from src.tat_api.container import ServiceContainer
from src.tat_api.errors import ValidationError

CONTENT_TYPE_ERROR = (
    "You must specify a Content-Type of either "
    "`application/x-www-form-urlencoded` or `application/json`"
)


async def get_container(request: Request) -> ServiceContainer:
    """Get the service container built during app startup."""
    return request.app.state.container


async def get_post_data(request: Request) -> dict[str, Any]:
    """Decode a JSON or form-encoded body into a dict.

    Repeated form keys (``accomplishments`` or ``accomplishments[]``) become lists.

    Raises:
        ValidationError: On a missing/unsupported Content-Type or invalid JSON.
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type == "application/json":
        try:
            data = json.loads(await request.body())
        except ValueError as exc:
            raise ValidationError("Error parsing JSON") from exc
        if not isinstance(data, dict):
            raise ValidationError("Error parsing JSON")
        return data

    if content_type == "application/x-www-form-urlencoded":
        form = await request.form()
        data: dict[str, Any] = {}
        for key in form.keys():
            values = form.getlist(key)
            if key.endswith("[]"):
                data[key[:-2]] = list(values)
            elif key == "accomplishments" or len(values) > 1:
                data[key] = list(values)
            else:
                data[key] = values[0]
        return data

    raise ValidationError(CONTENT_TYPE_ERROR)


def require_id_token(data: dict[str, Any]) -> str:
    token = data.get("firebaseIdToken")
    if not token:
        raise ValidationError("`firebaseIdToken` must be present in the POST parameters.")
    return str(token)
