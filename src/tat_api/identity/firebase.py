"""Firebase ID token verification through the identity toolkit REST API."""

from __future__ import annotations

import httpx
import structlog

from src.tat_api.errors import AuthError

logger = structlog.get_logger(__name__)


class FirebaseVerifier:
    """Turns a Firebase ID token into the user's Firebase uid.

    Args:
        http_client: Shared httpx.AsyncClient.
        api_key: Firebase web API key.
        auth_base: Identity toolkit relyingparty base URL.
    """

    def __init__(self, http_client: httpx.AsyncClient, api_key: str, auth_base: str) -> None:
        self._http = http_client
        self._api_key = api_key
        self._auth_base = auth_base.rstrip("/")

    async def verify(self, id_token: str) -> str:
        """Return the uid (``localId``) of the signed-in user.

        Raises:
            AuthError: If the request fails or Firebase rejects the token.
        """
        try:
            response = await self._http.post(
                f"{self._auth_base}/getAccountInfo",
                params={"key": self._api_key},
                json={"idToken": id_token},
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise AuthError(f"The request to Firebase failed to execute: {exc}") from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            logger.info("firebase.token_rejected", message=message)
            raise AuthError(f"The request to Firebase returned with an error: {message}")

        try:
            return body["users"][0]["localId"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AuthError("The request to Firebase returned no user") from exc
