"""Tests for the Slack Web API client (httpx.MockTransport)."""

import json
import pytest
import httpx

from auditor.common.slack_client import SlackAPIError, SlackClient


def _client(handler):
    return SlackClient(bot_token="xoxb-test", transport=httpx.MockTransport(handler))


class TestWebApi:
    @pytest.mark.asyncio
    async def test_users_info(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "user": {"id": "U1", "real_name": "Dana Lee"}})

        user = await _client(handler).users_info("U1")

        assert user["real_name"] == "Dana Lee"
        assert seen[0].url.path == "/api/users.info"
        assert seen[0].url.params["user"] == "U1"
        assert seen[0].headers["Authorization"] == "Bearer xoxb-test"

    @pytest.mark.asyncio
    async def test_post_message_in_thread(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "ts": "1.2"})

        await _client(handler).post_message("C1", "hi", thread_ts="1.1")

        assert seen == [{"channel": "C1", "text": "hi", "thread_ts": "1.1"}]

    @pytest.mark.asyncio
    async def test_ok_false_raises(self):
        client = _client(lambda request: httpx.Response(200, json={"ok": False, "error": "file_not_found"}))

        with pytest.raises(SlackAPIError, match="file_not_found"):
            await client.files_info("F1")

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = _client(lambda request: httpx.Response(500))

        with pytest.raises(SlackAPIError):
            await client.users_info("U1")


class TestResponsesAndFiles:
    @pytest.mark.asyncio
    async def test_post_response_is_ephemeral(self):
        seen = []

        def handler(request):
            seen.append((str(request.url), json.loads(request.content)))
            return httpx.Response(200, text="ok")

        await _client(handler).post_response("https://hooks.slack.com/commands/x", "done")

        assert seen == [("https://hooks.slack.com/commands/x", {"text": "done", "response_type": "ephemeral"})]

    @pytest.mark.asyncio
    async def test_download_file(self):
        def handler(request):
            assert request.headers["Authorization"] == "Bearer xoxb-test"
            return httpx.Response(200, text="a,b\n1,2")

        content = await _client(handler).download_file("https://files.slack.com/f.csv")

        assert content == "a,b\n1,2"

    @pytest.mark.asyncio
    async def test_download_failure(self):
        client = _client(lambda request: httpx.Response(403))

        with pytest.raises(SlackAPIError, match="download"):
            await client.download_file("https://files.slack.com/f.csv")
