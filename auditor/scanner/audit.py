"""
Audit Requests

On-demand audits requested through the ``/compliance-audit`` slash command
or by mentioning the bot. Both are answered by the rules agent when it is
enabled; otherwise a fixed reply points the user to file uploads.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .aggregator import format_issues_report
from .handlers.base import Message, SlashCommand
from .rules_agent import MANUAL_AUDIT_TOPIC, RulesAgentClient

logger = logging.getLogger("auditor.scanner.audit")

CHANNEL_REF = re.compile(r"<#([A-Z0-9]+)(?:\|[^>]+)?>")
USER_REF = re.compile(r"<@([A-Z0-9]+)(?:\|[^>]+)?>")

AUDIT_KEYWORDS = ("scan", "audit", "check")

# (keyword, scan type), first match wins
SCAN_TYPES = [
    ("gdpr", "GDPR"),
    ("hipaa", "HIPAA"),
    ("pci", "PCI-DSS"),
    ("security", "Info Security"),
]

FILE_TARGET_REPLY = (
    "File scanning is not implemented for direct command yet. "
    "Try uploading a file to trigger automatic scanning."
)
UNKNOWN_USER_REPLY = "I couldn't recognize the user to scan. Please try again with a valid @mention."
GREETING_REPLY = (
    "Hello! I'm the Compliance Auditor. You can ask me to scan channels or files for "
    "compliance issues, or ask questions about compliance policies."
)
ERROR_REPLY = "Sorry, there was an error processing your request. Please try again later."
MENTION_ERROR_REPLY = "Sorry, I encountered an error while processing your request."
SCAN_PENDING_REPLY = "Running compliance scan, please wait..."
MENTION_PENDING_REPLY = "I'm analyzing this channel for compliance issues..."


@dataclass
class AuditTarget:
    """What an audit command points at"""
    target_type: str  # "channel", "user", or "file"
    target_id: Optional[str] = None


class TargetError(ValueError):
    """The command names a target that cannot be audited; message is the reply."""
    pass


def parse_target(text: str, channel_id: str) -> AuditTarget:
    """
    Work out the audit target from command text.

    Defaults to the channel the command was issued in. Channel references
    take precedence over file requests, which take precedence over users.

    Raises:
        TargetError: for file targets and unparseable user mentions
    """
    text = text or ""

    if "<#" in text:
        match = CHANNEL_REF.search(text)
        return AuditTarget("channel", match.group(1) if match else channel_id)

    if "file" in text:
        raise TargetError(FILE_TARGET_REPLY)

    if "<@" in text:
        match = USER_REF.search(text)
        if not match:
            raise TargetError(UNKNOWN_USER_REPLY)
        return AuditTarget("user", match.group(1))

    return AuditTarget("channel", channel_id)


def detect_scan_type(text: str) -> str:
    """Scan type named in a mention, or 'general'"""
    lowered = (text or "").lower()
    for keyword, scan_type in SCAN_TYPES:
        if keyword in lowered:
            return scan_type
    return "general"


def is_audit_request(text: str) -> bool:
    """True when a mention asks for a scan, audit or check"""
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in AUDIT_KEYWORDS)


class AuditService:
    """Answers audit commands and mentions"""

    def __init__(self, agent: Optional[RulesAgentClient] = None, use_rules_agent: bool = False):
        self._agent = agent
        self._use_rules_agent = use_rules_agent and agent is not None

    async def _invoke_audit(
        self,
        agent_input: Dict[str, Any],
        channel_id: str,
        user_id: str,
    ):
        return await self._agent.invoke(
            MANUAL_AUDIT_TOPIC,
            agent_input,
            {"channelId": channel_id, "userId": user_id},
        )

    async def process_command(self, command: SlashCommand) -> str:
        """
        Run a ``/compliance-audit`` command.

        Returns:
            Reply text for the requesting user
        """
        try:
            target = parse_target(command.text, command.channel_id)
        except TargetError as e:
            return str(e)

        if self._use_rules_agent:
            try:
                response = await self._invoke_audit(
                    {"command": "audit", "targetType": target.target_type, "targetId": target.target_id},
                    command.channel_id,
                    command.user_id,
                )
                if response.issues:
                    return format_issues_report(response.issues, target.target_type, target.target_id)
                return f":white_check_mark: No compliance issues found in the {target.target_type}."
            except Exception as e:
                logger.error("Error with rules agent for audit command: %s", e)

        return (
            f"I've scanned the {target.target_type} but couldn't perform a detailed analysis. "
            "Please upload specific files for scanning."
        )

    async def process_mention(self, message: Message) -> str:
        """
        Answer a bot mention.

        Returns:
            Reply text, posted in the mention's thread
        """
        if not is_audit_request(message.text):
            return GREETING_REPLY

        scan_type = detect_scan_type(message.text)

        if self._use_rules_agent:
            try:
                response = await self._invoke_audit(
                    {
                        "command": "audit",
                        "targetType": "channel",
                        "targetId": message.channel,
                        "scanType": scan_type,
                    },
                    message.channel,
                    message.user,
                )
                if response.issues:
                    return format_issues_report(response.issues, "channel", message.channel)
                return f":white_check_mark: No {scan_type} compliance issues found in this channel."
            except Exception as e:
                logger.error("Error with rules agent for audit mention: %s", e)

        return (
            f"I've reviewed this channel for {scan_type} compliance issues. "
            "For detailed scanning, please share specific files for me to analyze."
        )
