"""
Slack Web API Client

Thin async wrapper over the handful of Slack Web API methods the auditor
needs: users.info, files.info, chat.postMessage, response_url replies and
private file download.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("auditor.common.slack_client")


class SlackAPIError(Exception):
    """Slack returned ok=false or the HTTP call failed."""
    pass


class SlackClient:
    """
    Async client for the Slack Web API.

    The underlying httpx client is created lazily on first use.

    Usage:
        client = SlackClient(bot_token="xoxb-...")
        await client.post_message(channel="U123", text="Hello")
        await client.close()
    """

    def __init__(
        self,
        bot_token: str,
        base_url: str = "https://slack.com/api",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Slack client.

        Args:
            bot_token: Bot user OAuth token (xoxb-...)
            base_url: Web API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.bot_token = bot_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.bot_token}"}

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, *, params: Optional[dict] = None, json: Optional[dict] = None) -> Dict[str, Any]:
        client = self._ensure_client()
        url = f"{self.base_url}/{method}"
        try:
            if json is not None:
                response = await client.post(url, json=json, headers=self._auth_headers)
            else:
                response = await client.get(url, params=params, headers=self._auth_headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SlackAPIError(f"{method} failed: {e}") from e

        if not data.get("ok"):
            raise SlackAPIError(f"{method} failed: {data.get('error', 'unknown_error')}")
        return data

    async def users_info(self, user_id: str) -> Dict[str, Any]:
        """Return the ``user`` object for a user id"""
        data = await self._call("users.info", params={"user": user_id})
        return data.get("user", {})

    async def files_info(self, file_id: str) -> Dict[str, Any]:
        """Return the ``file`` object for a file id"""
        data = await self._call("files.info", params={"file": file_id})
        return data.get("file", {})

    async def post_message(self, channel: str, text: str, thread_ts: Optional[str] = None) -> Dict[str, Any]:
        """Post a plain-text message (a user id as channel opens a DM)"""
        payload = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        return await self._call("chat.postMessage", json=payload)

    async def post_response(self, response_url: str, text: str, response_type: str = "ephemeral") -> None:
        """Reply to a slash command through its response_url"""
        client = self._ensure_client()
        try:
            response = await client.post(
                response_url,
                json={"text": text, "response_type": response_type},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SlackAPIError(f"response_url post failed: {e}") from e

    async def download_file(self, url: str) -> str:
        """Download a private file as text using the bot token"""
        client = self._ensure_client()
        try:
            response = await client.get(url, headers=self._auth_headers, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SlackAPIError(f"File download failed: {e}") from e
        return response.text
