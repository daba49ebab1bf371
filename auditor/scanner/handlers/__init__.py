"""
Source Handlers

Convert chat-platform webhooks into the event types the monitor handles.

Available Handlers:
- SlackHandler: Slack Events API and slash commands
"""

from .base import BaseHandler, Message, FileShared, SlashCommand, InboundEvent
from .slack import SlackHandler, message_permalink

__all__ = [
    "BaseHandler",
    "Message",
    "FileShared",
    "SlashCommand",
    "InboundEvent",
    "SlackHandler",
    "message_permalink",
]
