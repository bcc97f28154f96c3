"""Session-expiration detection and the single refresh-and-replay policy."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from src.tat_api.errors import UpstreamError
from src.tat_api.salesforce.tokens import TokenManager

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Salesforce reports "INVALID_SESSION_ID"; "invalid session" is the generic form
INVALID_SESSION_ERROR_CODES = frozenset({"INVALID_SESSION_ID", "invalid session"})


def is_session_expired(error: BaseException) -> bool:
    """Return True for a 401 whose first error carries an invalid-session code."""
    return (
        isinstance(error, UpstreamError)
        and error.upstream_status == 401
        and error.first_error_code() in INVALID_SESSION_ERROR_CODES
    )


class RequestOrchestrator:
    """Runs Salesforce calls under the expiration-retry policy.

    ``make_request`` is invoked once. If it fails with an expired session the
    token is refreshed and ``make_request`` is invoked exactly once more; its
    outcome, success or failure, is final. Any other failure, and any refresh
    failure, propagates unchanged.

    Args:
        tokens: Manager used to refresh the access token.
    """

    def __init__(self, tokens: TokenManager) -> None:
        self._tokens = tokens

    async def with_expiration_retry(self, make_request: Callable[[], Awaitable[T]]) -> T:
        try:
            return await make_request()
        except UpstreamError as exc:
            if not is_session_expired(exc):
                raise
            logger.info("salesforce.session_expired")

        await self._tokens.refresh()
        return await make_request()
