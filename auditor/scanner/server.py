"""
Scanner Server

FastAPI server for receiving Slack webhooks and auditing them for
compliance issues.

Endpoints:
- POST /slack/events: Slack Events API endpoint (messages, mentions, files)
- POST /slack/commands: Slash-command endpoint (/compliance-audit)
- GET /health: Health check

Pipeline:
1. Receive webhook event
2. Verify signature and parse with the Slack handler
3. Acknowledge immediately; process in the background
4. Classify (classifier -> rules agent -> local patterns)
5. Notify the author by DM and create a compliance incident
"""

import json
import logging
from typing import Optional, Union
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException, Header, BackgroundTasks
from fastapi.responses import JSONResponse, Response

from .. import __version__
from ..common.config import load_config, AuditorConfig, ensure_directories
from ..common.logging_setup import configure_logging
from ..common.slack_client import SlackClient
from .audit import AuditService
from .classifier import RemoteClassifier
from .handlers import SlackHandler, Message, FileShared, SlashCommand
from .monitor import ComplianceMonitor
from .orchestrator import ClassificationOrchestrator
from .rules_agent import RulesAgentClient

logger = logging.getLogger("auditor.scanner.server")

AUDIT_COMMAND = "/compliance-audit"

# Global state
config: Optional[AuditorConfig] = None
classifier: Optional[RemoteClassifier] = None
agent: Optional[RulesAgentClient] = None
orchestrator: Optional[ClassificationOrchestrator] = None
slack_client: Optional[SlackClient] = None
slack_handler: Optional[SlackHandler] = None
monitor: Optional[ComplianceMonitor] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, classifier, agent, orchestrator, slack_client, slack_handler, monitor

    ensure_directories()
    config = load_config()
    configure_logging(config.log_level)

    logger.info("Starting Compliance Auditor v%s", __version__)

    classifier = RemoteClassifier.from_config(config.llm)
    agent = RulesAgentClient.from_config(config.salesforce)

    if config.features.mock_mode:
        classifier.enable_mock_mode()
        agent.enable_mock_mode()
        logger.info("Mock mode enabled, external services will be simulated")
    elif config.salesforce.username:
        await agent.initialize()
    else:
        logger.warning("Salesforce credentials not configured, incidents will not be stored")

    orchestrator = ClassificationOrchestrator.from_config(config, classifier=classifier, agent=agent)
    logger.info("Detection tiers: %s", " -> ".join(orchestrator.tiers))

    slack_client = SlackClient(
        bot_token=config.slack.bot_token,
        base_url=config.slack.api_base_url,
        timeout=config.slack.timeout,
    )
    slack_handler = SlackHandler(signing_secret=config.slack.signing_secret)

    audit = AuditService(agent=agent, use_rules_agent=config.features.use_rules_agent)
    monitor = ComplianceMonitor(orchestrator, agent, slack_client, audit)

    logger.info(
        "Ready to receive events (classifier: %s, rules agent: %s, mock: %s)",
        config.features.use_classifier, config.features.use_rules_agent, config.features.mock_mode,
    )

    yield

    logger.info("Shutting down...")
    await monitor.wait_for_notifications()
    await slack_client.close()
    await agent.close()


app = FastAPI(
    title="Compliance Auditor",
    description="Slack compliance monitoring via webhooks",
    version=__version__,
    lifespan=lifespan
)


# =============================================================================
# Background Tasks
# =============================================================================

async def process_event(event: Union[Message, FileShared]):
    """Route a parsed event to the monitor; failures are logged only"""
    if not monitor:
        logger.warning("Not initialized, skipping event")
        return

    try:
        if isinstance(event, FileShared):
            await monitor.handle_file_shared(event)
        elif event.is_mention:
            await monitor.handle_mention(event)
        else:
            await monitor.handle_message(event)
    except Exception as e:
        logger.error("Error processing %s event: %s", type(event).__name__, e)


async def process_command(command: SlashCommand):
    if not monitor:
        logger.warning("Not initialized, skipping command")
        return
    await monitor.handle_command(command)


def _should_dispatch(event: Union[Message, FileShared, None]) -> bool:
    if event is None:
        return False
    if isinstance(event, FileShared):
        return True
    if event.is_mention:
        return not event.is_bot
    return slack_handler.should_process(event)


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "compliance-auditor",
        "version": __version__,
        "initialized": monitor is not None,
        "tiers": orchestrator.tiers if orchestrator else [],
        "classifier_mock_mode": classifier.mock_mode if classifier else None,
        "rules_agent_mock_mode": agent.mock_mode if agent else None,
        "rules_agent_connected": agent.is_authenticated if agent else False,
    }


@app.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None)
):
    """
    Handle Slack Events API callbacks.

    Messages, mentions and file shares are acknowledged immediately and
    processed in the background.
    """
    if not slack_handler:
        raise HTTPException(status_code=503, detail="Handler not initialized")

    body = await request.body()

    if not slack_handler.verify_signature(
        body,
        x_slack_signature or "",
        x_slack_request_timestamp or ""
    ):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    if slack_handler.is_url_verification(data):
        challenge = slack_handler.get_challenge(data)
        return JSONResponse({"challenge": challenge})

    event = await slack_handler.parse_event(data)

    if _should_dispatch(event):
        background_tasks.add_task(process_event, event)

    return JSONResponse({"ok": True})


@app.post("/slack/commands")
async def slack_commands(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None)
):
    """
    Handle slash commands.

    The command is acknowledged with an empty 200; progress and results are
    posted to the command's response_url.
    """
    if not slack_handler:
        raise HTTPException(status_code=503, detail="Handler not initialized")

    body = await request.body()

    if not slack_handler.verify_signature(
        body,
        x_slack_signature or "",
        x_slack_request_timestamp or ""
    ):
        raise HTTPException(status_code=401, detail="Invalid signature")

    command = slack_handler.parse_command(body)
    if command.command != AUDIT_COMMAND:
        raise HTTPException(status_code=400, detail=f"Unknown command: {command.command}")

    background_tasks.add_task(process_command, command)
    return Response(status_code=200)


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Compliance Auditor server"""
    import uvicorn

    config = load_config()
    port = config.slack.port

    logger.info("Starting server on port %d", port)
    uvicorn.run(
        "auditor.scanner.server:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
