"""
Compliance Monitor

Event-level pipeline for the bot:

1. Scan the message text or shared file content (fallback chain)
2. Notify the author by direct message (fire-and-forget)
3. Create one incident in the case-management store

Notification and incident logging are independent: a failure in one never
blocks or fails the other, and neither is surfaced to the chat.
"""

import asyncio
import logging
from typing import List, Optional, Set

from ..common.schemas import Incident, Issue
from ..common.slack_client import SlackAPIError, SlackClient
from .aggregator import (
    combined_types,
    file_notification,
    filename_notification,
    incident_severity,
    message_notification,
)
from .audit import (
    AuditService,
    ERROR_REPLY,
    MENTION_ERROR_REPLY,
    MENTION_PENDING_REPLY,
    SCAN_PENDING_REPLY,
    is_audit_request,
)
from .file_inspector import inspect_filename, is_scannable, primary_issue, supplement_with_filename
from .handlers.base import FileShared, Message, SlashCommand
from .orchestrator import ClassificationOrchestrator
from .rules_agent import RulesAgentClient

logger = logging.getLogger("auditor.scanner.monitor")


class ComplianceMonitor:
    """Handles inbound chat events end to end"""

    def __init__(
        self,
        orchestrator: ClassificationOrchestrator,
        agent: RulesAgentClient,
        slack: SlackClient,
        audit: Optional[AuditService] = None,
    ):
        self._orchestrator = orchestrator
        self._agent = agent
        self._slack = slack
        self._audit = audit or AuditService()
        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Delivery helpers
    # ------------------------------------------------------------------

    def _notify(self, user: str, text: str) -> None:
        """Send a DM without waiting for it"""
        task = asyncio.create_task(self._send_notification(user, text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send_notification(self, user: str, text: str) -> None:
        try:
            await self._slack.post_message(channel=user, text=text)
        except Exception as e:
            logger.error("Error sending notification message: %s", e)

    async def wait_for_notifications(self) -> None:
        """Wait for in-flight notifications (shutdown and tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _log_incident(
        self,
        types: List[str],
        issues: List[Issue],
        description: str,
        link: str,
        user: str,
        channel: str,
    ) -> str:
        incident = Incident(
            types=types,
            severity=incident_severity(issues),
            description=description,
            slack_message_link=link or "",
            user=user or "",
            channel=channel or "",
        )
        return await self._agent.create_incident(incident)

    async def _user_display_name(self, user_id: str) -> Optional[str]:
        try:
            info = await self._slack.users_info(user_id)
        except SlackAPIError as e:
            logger.warning("Could not look up user %s: %s", user_id, e)
            return None
        return info.get("real_name") or None

    # ------------------------------------------------------------------
    # Ambient messages
    # ------------------------------------------------------------------

    async def handle_message(self, message: Message) -> Optional[str]:
        """
        Scan a channel message.

        Returns:
            Incident id when issues were found, else None
        """
        issues = await self._orchestrator.scan(message.text)
        if not issues:
            return None

        user_name = await self._user_display_name(message.user)
        self._notify(message.user, message_notification(issues, message.channel, user_name))

        types = combined_types(issues)
        incident_id = await self._log_incident(
            types,
            issues,
            f"Detected {', '.join(types)} in channel <#{message.channel}>",
            message.url,
            message.user,
            message.channel,
        )

        logger.info(
            "Compliance issue detected and notification sent (channel: %s, user: %s, types: %s)",
            message.channel, message.user, [issue.type for issue in issues],
        )
        return incident_id

    # ------------------------------------------------------------------
    # Shared files
    # ------------------------------------------------------------------

    async def handle_file_shared(self, event: FileShared) -> Optional[str]:
        """
        Scan a shared file: content for text-like files, name otherwise.

        Returns:
            Incident id when issues were found, else None
        """
        file_info = await self._slack.files_info(event.file_id)
        file_name = file_info.get("name", "")
        mimetype = file_info.get("mimetype", "")
        user_id = event.user or file_info.get("user", "")
        channels = file_info.get("channels") or []
        channel_id = event.channel or (channels[0] if channels else "")

        logger.info("Processing file share (user: %s, channel: %s, file: %s)", user_id, channel_id, file_name)

        if not is_scannable(mimetype):
            return await self._check_filename_only(file_info, user_id, channel_id)

        try:
            content = await self._download(file_info)
        except SlackAPIError as e:
            logger.error("Error downloading file content: %s", e)
            return await self._check_filename_only(file_info, user_id, channel_id)

        content_issues = await self._orchestrator.scan(content)
        issues = supplement_with_filename(file_name, content_issues)

        if not issues:
            logger.info("No compliance issues detected in file content")
            return None

        self._notify(user_id, file_notification(issues, file_name))

        details = ", ".join(issue.detail for issue in issues)
        return await self._log_incident(
            combined_types(issues),
            issues,
            f'Detected multiple compliance issues in file "{file_name}" - {details}',
            file_info.get("permalink", ""),
            user_id,
            channel_id,
        )

    async def _download(self, file_info: dict) -> str:
        url = file_info.get("url_private")
        if not url:
            logger.info("No URL available to download file")
            return f"Filename: {file_info.get('name', '')}"
        content = await self._slack.download_file(url)
        logger.info("File content downloaded (length: %d)", len(content))
        return content

    async def _check_filename_only(self, file_info: dict, user_id: str, channel_id: str) -> Optional[str]:
        file_name = file_info.get("name", "")
        issue = primary_issue(inspect_filename(file_name))
        if issue is None:
            return None

        self._notify(user_id, filename_notification(issue, file_name))

        incident_id = await self._log_incident(
            [issue.type],
            [issue],
            f'Detected potential {issue.type} based on file name "{file_name}"',
            file_info.get("permalink", ""),
            user_id,
            channel_id,
        )
        logger.info("Compliance issue detected from filename (file: %s, user: %s)", file_name, user_id)
        return incident_id

    # ------------------------------------------------------------------
    # Commands and mentions
    # ------------------------------------------------------------------

    async def handle_command(self, command: SlashCommand) -> None:
        """Run a slash command, replying through its response_url"""
        try:
            await self._slack.post_response(command.response_url, SCAN_PENDING_REPLY)
            result = await self._audit.process_command(command)
            await self._slack.post_response(command.response_url, result)
        except Exception as e:
            logger.error("Error handling %s command: %s", command.command, e)
            try:
                await self._slack.post_response(command.response_url, ERROR_REPLY)
            except SlackAPIError as reply_error:
                logger.error("Error sending command error reply: %s", reply_error)

    async def handle_mention(self, message: Message) -> None:
        """Answer a bot mention in its thread"""
        try:
            if is_audit_request(message.text):
                await self._slack.post_message(message.channel, MENTION_PENDING_REPLY, thread_ts=message.timestamp)
            result = await self._audit.process_mention(message)
            await self._slack.post_message(message.channel, result, thread_ts=message.timestamp)
        except Exception as e:
            logger.error("Error handling app_mention event: %s", e)
            try:
                await self._slack.post_message(message.channel, MENTION_ERROR_REPLY, thread_ts=message.timestamp)
            except SlackAPIError as reply_error:
                logger.error("Error sending mention error reply: %s", reply_error)
