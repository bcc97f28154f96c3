"""Salesforce OAuth token state: the durable TokenStore and the TokenManager.

One TokenStore exists per process and is passed explicitly to every component
that reads or refreshes the access token. The token document on disk uses the
same snake_case keys the Salesforce token endpoint returns.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path

import httpx
import structlog
from pydantic import BaseModel

from src.tat_api.errors import ConfigError, TokenRefreshError

logger = structlog.get_logger(__name__)


class AccessToken(BaseModel):
    """Current Salesforce credentials."""

    access_token: str
    refresh_token: str
    instance_url: str


class TokenStore:
    """Holds the live AccessToken and persists it to a JSON document.

    Args:
        path: Location of the token document.
        token: Initial token; usually obtained through TokenStore.load().
    """

    def __init__(self, path: str | Path, token: AccessToken) -> None:
        self._path = Path(path)
        self._token = token

    @classmethod
    def load(cls, path: str | Path) -> TokenStore:
        """Read the token document written by a previous run or by setup."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Salesforce token file not found: {path}")
        try:
            data = json.loads(path.read_text())
            token = AccessToken.model_validate(data)
        except (json.JSONDecodeError, ValueError) as exc:
            raise ConfigError(f"Invalid Salesforce token file {path}: {exc}") from exc
        logger.info("salesforce.token_loaded", path=str(path), instance_url=token.instance_url)
        return cls(path, token)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> AccessToken:
        return self._token

    def replace(self, token: AccessToken) -> None:
        """Swap the in-memory token and write it to disk atomically."""
        self._write(token)
        self._token = token

    def _write(self, token: AccessToken) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".sf-auth-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(token.model_dump(), f)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class TokenManager:
    """Reads the current token and performs refresh-token exchanges.

    Refreshes are serialized with a lock so concurrent requests that both see
    an expired session do not interleave writes to the token document. The
    manager never retries a failed refresh; that decision belongs to the
    request orchestrator.

    Args:
        store: Process-wide token store.
        http_client: Shared async HTTP client.
        oauth_base: Base URL of the Salesforce OAuth endpoints.
        client_id: Connected app consumer key.
        client_secret: Connected app consumer secret.
    """

    def __init__(
        self,
        store: TokenStore,
        http_client: httpx.AsyncClient,
        oauth_base: str,
        client_id: str,
        client_secret: str,
    ) -> None:
        self._store = store
        self._http = http_client
        self._oauth_base = oauth_base.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._lock = asyncio.Lock()

    def get_current_token(self) -> AccessToken:
        return self._store.current

    async def refresh(self) -> AccessToken:
        """Exchange the stored refresh token for a new access token.

        Returns:
            The new AccessToken, already persisted.

        Raises:
            TokenRefreshError: On transport failure, non-2xx status, or a
                response body without an access_token.
        """
        async with self._lock:
            current = self._store.current
            logger.info("salesforce.token_refreshing")
            try:
                response = await self._http.post(
                    f"{self._oauth_base}/token",
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": current.refresh_token,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "format": "json",
                    },
                )
            except httpx.HTTPError as exc:
                raise TokenRefreshError(None, str(exc)) from exc

            if not response.is_success:
                logger.error(
                    "salesforce.token_refresh_failed",
                    status_code=response.status_code,
                )
                raise TokenRefreshError(response.status_code, response.text)

            try:
                body = response.json()
                access_token = body["access_token"]
            except (ValueError, KeyError, TypeError) as exc:
                raise TokenRefreshError(response.status_code, response.text) from exc

            refreshed = current.model_copy(
                update={
                    "access_token": access_token,
                    "instance_url": body.get("instance_url") or current.instance_url,
                }
            )
            await asyncio.to_thread(self._store.replace, refreshed)
            logger.info("salesforce.token_refreshed", instance_url=refreshed.instance_url)
            return refreshed
