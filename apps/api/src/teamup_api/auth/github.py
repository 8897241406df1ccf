"""GitHub OAuth app used to prove ownership of a claimed GitHub profile."""

from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from teamup_api.config import settings

logger = structlog.get_logger()


class GitHubOAuth:
    """GitHub OAuth client.

    Used only to prove control of a GitHub account: the resulting login is
    compared with the profile URL the user claimed.
    """

    AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
    TOKEN_URL = "https://github.com/login/oauth/access_token"
    USER_URL = "https://api.github.com/user"
    SCOPES = "read:user repo"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Build the OAuth app from credentials, or from settings when omitted."""
        self.client_id = settings.GITHUB_CLIENT_ID if client_id is None else client_id
        self.client_secret = (
            settings.GITHUB_CLIENT_SECRET if client_secret is None else client_secret
        )
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_authorize_url(self, state: str, redirect_uri: str) -> str:
        """URL the profile page redirects to, with read:user and repo scopes."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": self.SCOPES,
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str | None = None) -> str | None:
        """Exchange authorization code for an access token."""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
        }
        if redirect_uri:
            data["redirect_uri"] = redirect_uri

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    self.TOKEN_URL,
                    data=data,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPError as e:
                logger.error("GitHub OAuth exchange failed", error=str(e))
                return None

        if "error" in payload:
            logger.error("GitHub OAuth error", error=payload.get("error_description"))
            return None

        return payload.get("access_token")

    async def get_user(self, access_token: str) -> dict[str, Any] | None:
        """Get the authenticated GitHub user."""
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.get(
                    self.USER_URL,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as e:
                logger.error("Failed to get GitHub user", error=str(e))
                return None
