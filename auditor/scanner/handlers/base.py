"""
Base Handler

Abstract base class for chat-platform event handlers, plus the common
event types the monitor works with.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union
from datetime import datetime


@dataclass
class Message:
    """
    A chat message (ambient channel message or bot mention).

    Only ``text`` is scanned; the other fields route notifications and
    fill in the incident record.
    """
    text: str
    user: str
    channel: str
    source: str  # "slack"
    timestamp: str
    thread_ts: Optional[str] = None
    url: Optional[str] = None
    is_bot: bool = False
    is_mention: bool = False
    raw_data: Optional[Dict[str, Any]] = None

    @property
    def datetime(self) -> Optional[datetime]:
        """Parse timestamp to datetime"""
        try:
            return datetime.fromtimestamp(float(self.timestamp))
        except (ValueError, TypeError):
            return None

    @property
    def is_valid(self) -> bool:
        """Check if message has any text to scan"""
        return bool(self.text and self.text.strip())

    @property
    def is_thread_reply(self) -> bool:
        return self.thread_ts is not None and self.thread_ts != self.timestamp


@dataclass
class FileShared:
    """A file_shared event; file details are fetched separately"""
    file_id: str
    user: str = ""
    channel: str = ""
    source: str = "slack"
    raw_data: Optional[Dict[str, Any]] = None


@dataclass
class SlashCommand:
    """A slash-command invocation"""
    command: str
    text: str
    user_id: str
    channel_id: str
    response_url: str = ""
    raw_data: Dict[str, Any] = field(default_factory=dict)


InboundEvent = Union[Message, FileShared]


class BaseHandler(ABC):
    """
    Abstract base class for source handlers.

    Each handler must implement:
    - parse_event: Convert raw event to a Message or FileShared
    - verify_signature: Verify webhook signature (if applicable)
    """

    def __init__(self, source_name: str):
        """
        Initialize handler.

        Args:
            source_name: Name of the source (e.g., "slack")
        """
        self.source_name = source_name

    @abstractmethod
    async def parse_event(self, raw_data: Dict[str, Any]) -> Optional[InboundEvent]:
        """
        Parse raw event data.

        Args:
            raw_data: Raw event data from the source

        Returns:
            Message, FileShared, or None if the event should be ignored
        """
        pass

    @abstractmethod
    def verify_signature(
        self,
        body: bytes,
        signature: str,
        timestamp: str
    ) -> bool:
        """
        Verify the webhook signature.

        Args:
            body: Raw request body
            signature: Signature from headers
            timestamp: Timestamp from headers

        Returns:
            True if signature is valid
        """
        pass

    def should_process(self, message: Message) -> bool:
        """
        Check if a message should be scanned.

        Skips empty messages, bot messages and thread replies.
        """
        if not message.is_valid:
            return False

        if message.is_bot:
            return False

        if message.is_thread_reply:
            return False

        return True
