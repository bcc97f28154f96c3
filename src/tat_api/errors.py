"""Error taxonomy shared by the Salesforce layer, workflows, and API.

Every error the service raises on purpose derives from TatApiError and
carries an HTTP-style status code, so the API layer can render it without
knowing which component produced it.
"""

from __future__ import annotations

from typing import Any


class TatApiError(Exception):
    """Base error with an HTTP-style status and a client-facing message.

    Attributes:
        status_code: Status the API layer responds with.
        message: Human-readable description.
        error_code: Optional stable code the client can branch on.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.error_code = error_code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message}
        if self.error_code:
            body["errorCode"] = self.error_code
        return body


class ConfigError(TatApiError):
    """Raised when configuration or persisted state cannot be loaded."""


class ValidationError(TatApiError):
    """Missing or malformed input from the client."""

    status_code = 400


class AuthError(TatApiError):
    """The identity provider rejected or could not verify the caller."""

    status_code = 400


class UpstreamError(TatApiError):
    """A non-2xx Salesforce response that is not a session expiration.

    Attributes:
        upstream_status: HTTP status returned by Salesforce.
        body_text: Raw response body.
        body: Parsed JSON body, or None when the body is not JSON.
    """

    def __init__(
        self,
        upstream_status: int,
        body_text: str,
        body: Any = None,
        message: str | None = None,
    ) -> None:
        self.upstream_status = upstream_status
        self.body_text = body_text
        self.body = body
        super().__init__(
            message or f"Salesforce request failed: {upstream_status} {body_text}",
            status_code=upstream_status if upstream_status >= 400 else 502,
        )

    def first_error_code(self) -> str | None:
        """Return errorCode of the first element of a Salesforce error list."""
        if isinstance(self.body, list) and self.body and isinstance(self.body[0], dict):
            return self.body[0].get("errorCode")
        return None


class TokenRefreshError(TatApiError):
    """The refresh-token exchange failed; fatal to the in-flight transaction."""

    status_code = 502

    def __init__(self, upstream_status: int | None, body_text: str) -> None:
        self.upstream_status = upstream_status
        self.body_text = body_text
        super().__init__(f"Failed to refresh Salesforce token: {upstream_status} {body_text}")


class ExpectedBusinessError(TatApiError):
    """A recognized outcome the client is expected to branch on by error_code."""

    status_code = 400

    def __init__(self, error_code: str, message: str) -> None:
        super().__init__(message, error_code=error_code)


class UnknownSubjectError(ExpectedBusinessError):
    """The Firebase user has no Contact in Salesforce."""

    ERROR_CODE = "FIREBASE_USER_NOT_IN_SALESFORCE"

    def __init__(self, subject_id: str) -> None:
        self.subject_id = subject_id
        super().__init__(
            self.ERROR_CODE,
            "The specified Firebase user does not have an associated Contact entry in Salesforce",
        )


class CampaignOwnerNotFoundError(TatApiError):
    """No User owns the campaign of the outreach location."""

    def __init__(self, campaign_id: str) -> None:
        self.campaign_id = campaign_id
        super().__init__(f"Failed to get campaign owner for campaign {campaign_id}")


class BatchCreateError(TatApiError):
    """A composite insert reported failure on its first element."""

    status_code = 502

    def __init__(self, responses: Any) -> None:
        self.responses = responses
        super().__init__(f"Failed to create records: {responses}")


class PaginationLimitError(TatApiError):
    """A query kept returning pages past the configured maximum."""

    status_code = 502

    def __init__(self, max_pages: int) -> None:
        self.max_pages = max_pages
        super().__init__(f"Query exceeded the maximum of {max_pages} pages")


class NotificationError(TatApiError):
    """Sending the summary notification failed. Logged, never surfaced."""
