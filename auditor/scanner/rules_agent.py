"""
Rules Agent Client

Second detection tier and the case-management store. Talks to a
Salesforce org over its REST API:

- OAuth username/password login
- Agentforce agent invocation (``invoke``)
- Compliance_Incident__c record creation (``create_incident``)

When login fails (or ``enable_mock_mode`` is called) the client answers
invocations from a reduced local pattern scan and returns placeholder
incident ids.
"""

import json
import logging
import re
import time
from typing import Any, Dict, Optional, Union

import httpx

from ..common.config import SalesforceConfig
from ..common.errors import AgentUnavailable, MalformedResponse
from ..common.llm_utils import extract_issue_list
from ..common.schemas import AgentResponse, Incident, Issue, Severity, parse_issues
from .pattern_matcher import CARD_NUMBER_PATTERN, EMAIL_PATTERN

logger = logging.getLogger("auditor.scanner.rules_agent")

AUTO_MONITOR_TOPIC = "Auto Policy Monitor"
MANUAL_AUDIT_TOPIC = "Manual Compliance Audit"

INCIDENT_SOBJECT = "Compliance_Incident__c"


# Mock rule subset: no SSN rule, no confidentiality rule, card numbers only.
# (regex, type, detail)
SIMULATED_RULES = [
    (EMAIL_PATTERN, "GDPR-PII", "Email address detected"),
    (re.compile(r"patient|medical record|diagnosis|treatment", re.IGNORECASE),
     "HIPAA", "Healthcare information detected"),
    (re.compile(r"password|secret|key|token|credential", re.IGNORECASE),
     "Info Security", "Security credential mentioned"),
    (CARD_NUMBER_PATTERN, "PCI-DSS", "Credit card number detected"),
]


def _simulated_severity(issue_type: str) -> Severity:
    # Not the local matcher's table: cards and credentials are Medium here
    return Severity.HIGH if "HIPAA" in issue_type else Severity.MEDIUM


def simulate_agent_response(agent_input: Union[str, Dict[str, Any], None]) -> AgentResponse:
    """
    Answer an agent invocation locally.

    Args:
        agent_input: Text to scan, or a structured input which is scanned
            as its JSON serialization

    Returns:
        AgentResponse with issues and a summary line
    """
    if agent_input is None:
        agent_input = ""
    content = agent_input if isinstance(agent_input, str) else json.dumps(agent_input)

    issues = [
        Issue(type=issue_type, severity=_simulated_severity(issue_type), detail=detail)
        for regex, issue_type, detail in SIMULATED_RULES
        if regex.search(content)
    ]

    if issues:
        summary = f"Found {len(issues)} potential compliance issue(s)"
    else:
        summary = "No compliance issues detected"

    return AgentResponse(issues=issues, summary=summary, status="completed")


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class RulesAgentClient:
    """
    Async client for the Salesforce rules agent and incident store.

    Usage:
        agent = RulesAgentClient.from_config(config.salesforce)
        await agent.initialize()
        response = await agent.invoke("Auto Policy Monitor", "text to scan")
        incident_id = await agent.create_incident(incident)
        await agent.close()
    """

    def __init__(
        self,
        config: SalesforceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize rules agent client.

        Args:
            config: Salesforce connection settings
            transport: Optional httpx transport (used by tests)
        """
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._access_token: Optional[str] = None
        self._instance_url: str = config.instance_url.rstrip("/")
        self._mock_mode = False

    @classmethod
    def from_config(cls, config: SalesforceConfig) -> "RulesAgentClient":
        return cls(config)

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    def enable_mock_mode(self) -> None:
        self._mock_mode = True
        logger.info("Mock mode enabled for rules agent operations")

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _data_url(self, path: str) -> str:
        return f"{self._instance_url}/services/data/{self._config.api_version}/{path}"

    async def initialize(self) -> bool:
        """
        Log in to Salesforce.

        Returns:
            True when connected; False when login failed and mock mode
            was entered instead
        """
        if self._mock_mode:
            logger.info("Rules agent already in mock mode, skipping login")
            return False

        client = self._ensure_client()
        login_url = self._config.login_url.rstrip("/")
        try:
            response = await client.post(
                f"{login_url}/services/oauth2/token",
                data={
                    "grant_type": "password",
                    "client_id": self._config.client_id,
                    "client_secret": self._config.client_secret,
                    "username": self._config.username,
                    "password": self._config.password,
                },
            )
            response.raise_for_status()
            data = response.json()
            self._access_token = data["access_token"]
            if data.get("instance_url") and not self._instance_url:
                self._instance_url = data["instance_url"].rstrip("/")
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("Failed to connect to Salesforce: %s", e)
            self._access_token = None
            self._mock_mode = True
            logger.info("Entering mock mode for rules agent operations")
            return False

        logger.info("Connected to Salesforce (%s)", self._instance_url)
        return True

    async def invoke(
        self,
        topic: str,
        agent_input: Union[str, Dict[str, Any]],
        context: Optional[Dict[str, Any]] = None,
    ) -> AgentResponse:
        """
        Invoke the rules agent.

        Args:
            topic: Agent topic, e.g. "Auto Policy Monitor"
            agent_input: Raw content or a structured audit request
            context: Context variables passed through to the agent

        Returns:
            AgentResponse with issues (possibly empty) and summary

        Raises:
            AgentUnavailable: not authenticated, agent not configured, or the
                HTTP call failed
            MalformedResponse: the response has no issues collection
        """
        if self._mock_mode:
            logger.info("Mock: invoking rules agent (topic: %s)", topic)
            return simulate_agent_response(agent_input)

        if not self.is_authenticated:
            raise AgentUnavailable("Salesforce not authenticated")

        agent_id = self._config.agent_id
        if not agent_id:
            raise AgentUnavailable("Agent ID not configured")

        payload = {
            "agentId": agent_id,
            "topic": topic or AUTO_MONITOR_TOPIC,
            "input": agent_input,
            "contextVariables": context or {},
        }

        client = self._ensure_client()
        try:
            response = await client.post(
                self._data_url(f"agentforce/agents/{agent_id}/invoke"),
                json=payload,
                headers={"Authorization": f"Bearer {self._access_token}"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error invoking rules agent (topic: %s): %s", topic, e)
            raise AgentUnavailable(f"Agent invocation failed: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponse("Agent response is not an object")

        issues = parse_issues(extract_issue_list(data))
        result = data.get("result") if isinstance(data.get("result"), dict) else data
        return AgentResponse(
            issues=issues,
            summary=str(result.get("summary", "")),
            status=str(data.get("status", "completed")),
        )

    async def create_incident(self, incident: Incident) -> str:
        """
        Create a compliance incident record.

        Never raises: failures are logged and a placeholder id is returned.

        Args:
            incident: Incident to record

        Returns:
            Record id, ``mock-id-<ms>`` in mock mode, or
            ``mock-error-id-<ms>`` on failure
        """
        if self._mock_mode:
            logger.info("Mock: logging compliance incident (%s, %s)", incident.type_label, incident.severity.value)
            return f"mock-id-{_epoch_millis()}"

        try:
            if not self.is_authenticated:
                raise AgentUnavailable("Salesforce connection not initialized")

            client = self._ensure_client()
            response = await client.post(
                self._data_url(f"sobjects/{INCIDENT_SOBJECT}/"),
                json=incident.to_store_fields(),
                headers={"Authorization": f"Bearer {self._access_token}"},
            )
            response.raise_for_status()
            result = response.json()

            if not result.get("success"):
                errors = ", ".join(str(e) for e in result.get("errors", []))
                raise MalformedResponse(f"Failed to create incident: {errors}")

            logger.info("Compliance incident created (id: %s)", result.get("id"))
            return result["id"]
        except Exception as e:
            logger.error(
                "Error logging compliance incident (%s, %s): %s",
                incident.type_label, incident.severity.value, e,
            )
            return f"mock-error-id-{_epoch_millis()}"
