"""
Slack Handler

Handles Slack Events API webhooks and slash-command posts.
"""

import hmac
import hashlib
import time
from typing import Optional, Dict, Any
from urllib.parse import parse_qs

from .base import BaseHandler, FileShared, InboundEvent, Message, SlashCommand


def message_permalink(channel: str, ts: str) -> str:
    """Archive link of a message: https://slack.com/archives/<ch>/p<ts without dot>"""
    return f"https://slack.com/archives/{channel}/p{ts.replace('.', '')}"


class SlackHandler(BaseHandler):
    """
    Handler for Slack Events API webhooks.

    Processes:
    - message events (new messages in channels)
    - app_mention events
    - file_shared events

    Ignores:
    - Bot messages
    - Message subtypes such as joins, edits and deletions
    """

    IGNORED_SUBTYPES = {
        "bot_message", "channel_join", "channel_leave", "channel_topic",
        "channel_purpose", "channel_name", "message_changed",
        "message_deleted", "thread_broadcast",
    }

    def __init__(self, signing_secret: str = ""):
        """
        Initialize Slack handler.

        Args:
            signing_secret: Slack signing secret for verification
        """
        super().__init__("slack")
        self._signing_secret = signing_secret

    async def parse_event(self, raw_data: Dict[str, Any]) -> Optional[InboundEvent]:
        """
        Parse a Slack event callback.

        Args:
            raw_data: Raw Slack event data

        Returns:
            Message, FileShared, or None if the event should be ignored
        """
        if raw_data.get("type") != "event_callback":
            return None

        event = raw_data.get("event", {})
        event_type = event.get("type", "")

        if event_type == "message":
            return self._parse_message_event(event)

        if event_type == "app_mention":
            return self._parse_mention_event(event)

        if event_type == "file_shared":
            return self._parse_file_shared_event(event)

        return None

    def _parse_message_event(self, event: Dict[str, Any]) -> Optional[Message]:
        """Parse a standard message event"""
        if event.get("subtype") in self.IGNORED_SUBTYPES:
            return None

        channel = event.get("channel", "")
        ts = event.get("ts", "")

        return Message(
            text=event.get("text", "") or "",
            user=event.get("user", ""),
            channel=channel,
            source="slack",
            timestamp=ts,
            thread_ts=event.get("thread_ts"),
            url=message_permalink(channel, ts) if channel and ts else None,
            is_bot=bool(event.get("bot_id")),
            raw_data=event,
        )

    def _parse_mention_event(self, event: Dict[str, Any]) -> Message:
        """Parse an app_mention event"""
        return Message(
            text=event.get("text", "") or "",
            user=event.get("user", ""),
            channel=event.get("channel", ""),
            source="slack",
            timestamp=event.get("ts", ""),
            thread_ts=event.get("thread_ts"),
            is_bot=bool(event.get("bot_id")),
            is_mention=True,
            raw_data=event,
        )

    def _parse_file_shared_event(self, event: Dict[str, Any]) -> Optional[FileShared]:
        """Parse a file_shared event"""
        file_id = event.get("file_id") or event.get("file", {}).get("id")
        if not file_id:
            return None

        return FileShared(
            file_id=file_id,
            user=event.get("user_id") or event.get("user", ""),
            channel=event.get("channel_id", ""),
            raw_data=event,
        )

    def parse_command(self, body: bytes) -> SlashCommand:
        """Parse a form-encoded slash-command body"""
        form = {k: v[0] for k, v in parse_qs(body.decode("utf-8")).items()}
        return SlashCommand(
            command=form.get("command", ""),
            text=form.get("text", ""),
            user_id=form.get("user_id", ""),
            channel_id=form.get("channel_id", ""),
            response_url=form.get("response_url", ""),
            raw_data=form,
        )

    def verify_signature(
        self,
        body: bytes,
        signature: str,
        timestamp: str
    ) -> bool:
        """
        Verify Slack request signature.

        Args:
            body: Raw request body
            signature: X-Slack-Signature header
            timestamp: X-Slack-Request-Timestamp header

        Returns:
            True if signature is valid
        """
        if not self._signing_secret:
            # Skip verification if no secret configured
            return True

        if not signature or not timestamp:
            return False

        # Reject requests older than 5 minutes
        try:
            ts = int(timestamp)
            if abs(time.time() - ts) > 300:
                return False
        except ValueError:
            return False

        sig_basestring = f"v0:{timestamp}:{body.decode('utf-8')}"
        expected_sig = "v0=" + hmac.new(
            self._signing_secret.encode('utf-8'),
            sig_basestring.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(expected_sig, signature)

    def is_url_verification(self, raw_data: Dict[str, Any]) -> bool:
        """Check if request is URL verification"""
        return raw_data.get("type") == "url_verification"

    def get_challenge(self, raw_data: Dict[str, Any]) -> Optional[str]:
        """Get challenge for URL verification"""
        if self.is_url_verification(raw_data):
            return raw_data.get("challenge")
        return None
