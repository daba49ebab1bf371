"""
Tests for the Salesforce rules-agent client

HTTP traffic is served by httpx.MockTransport.
"""

import json
import pytest
import httpx

from auditor.common.config import SalesforceConfig
from auditor.common.errors import AgentUnavailable, MalformedResponse
from auditor.common.schemas import Incident, Severity
from auditor.scanner.rules_agent import (
    AUTO_MONITOR_TOPIC,
    RulesAgentClient,
    simulate_agent_response,
)

INSTANCE = "https://acme.my.salesforce.com"


def _config(**overrides):
    values = dict(
        login_url="https://login.salesforce.com",
        username="bot@acme.com",
        password="pw",
        client_id="cid",
        client_secret="csecret",
        agent_id="0XxAGENT",
    )
    values.update(overrides)
    return SalesforceConfig(**values)


class FakeSalesforce:
    """Records requests and answers them from per-path handlers"""

    def __init__(self):
        self.requests = []
        self.login_status = 200
        self.invoke_body = {"issues": []}
        self.invoke_status = 200
        self.create_body = {"id": "a01XYZ", "success": True, "errors": []}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/services/oauth2/token":
            if self.login_status != 200:
                return httpx.Response(self.login_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "TOKEN", "instance_url": INSTANCE})

        if path.endswith("/invoke"):
            return httpx.Response(self.invoke_status, json=self.invoke_body)

        if "/sobjects/Compliance_Incident__c" in path:
            return httpx.Response(201, json=self.create_body)

        return httpx.Response(404)


@pytest.fixture
def fake():
    return FakeSalesforce()


@pytest.fixture
def agent(fake):
    return RulesAgentClient(_config(), transport=httpx.MockTransport(fake))


def _incident():
    return Incident(
        types=["HIPAA", "PCI-DSS"],
        severity=Severity.CRITICAL,
        description="Detected HIPAA, PCI-DSS in channel <#C1>",
        slack_message_link="https://slack.com/archives/C1/p1700000000000100",
        user="U1",
        channel="C1",
    )


class TestInitialize:
    @pytest.mark.asyncio
    async def test_login_success(self, agent, fake):
        assert await agent.initialize() is True
        assert agent.is_authenticated
        assert agent.mock_mode is False

        form = dict(httpx.QueryParams(fake.requests[0].content.decode()))
        assert form["grant_type"] == "password"
        assert form["username"] == "bot@acme.com"

    @pytest.mark.asyncio
    async def test_login_failure_enters_mock_mode(self, agent, fake):
        fake.login_status = 400

        assert await agent.initialize() is False
        assert agent.mock_mode is True
        assert not agent.is_authenticated


class TestInvoke:
    @pytest.mark.asyncio
    async def test_invoke_posts_agent_payload(self, agent, fake):
        fake.invoke_body = {
            "issues": [{"type": "PCI-DSS", "severity": "Critical", "detail": "Card number"}],
            "summary": "Found 1 issue",
        }
        await agent.initialize()

        response = await agent.invoke(AUTO_MONITOR_TOPIC, "card 4111111111111111", {"channelId": "C1"})

        request = fake.requests[-1]
        assert request.url.path == "/services/data/v58.0/agentforce/agents/0XxAGENT/invoke"
        assert request.headers["Authorization"] == "Bearer TOKEN"
        payload = json.loads(request.content)
        assert payload == {
            "agentId": "0XxAGENT",
            "topic": AUTO_MONITOR_TOPIC,
            "input": "card 4111111111111111",
            "contextVariables": {"channelId": "C1"},
        }
        assert [issue.type for issue in response.issues] == ["PCI-DSS"]
        assert response.summary == "Found 1 issue"

    @pytest.mark.asyncio
    async def test_issues_wrapped_in_result(self, agent, fake):
        fake.invoke_body = {"result": {"issues": [{"type": "HIPAA", "severity": "High", "detail": "x"}]}}
        await agent.initialize()

        response = await agent.invoke(AUTO_MONITOR_TOPIC, "patient")

        assert response.issues[0].severity == Severity.HIGH

    @pytest.mark.asyncio
    async def test_not_authenticated_raises(self, agent):
        with pytest.raises(AgentUnavailable):
            await agent.invoke(AUTO_MONITOR_TOPIC, "text")

    @pytest.mark.asyncio
    async def test_missing_agent_id_raises(self, fake):
        agent = RulesAgentClient(_config(agent_id=""), transport=httpx.MockTransport(fake))
        await agent.initialize()

        with pytest.raises(AgentUnavailable):
            await agent.invoke(AUTO_MONITOR_TOPIC, "text")

    @pytest.mark.asyncio
    async def test_http_error_raises_unavailable(self, agent, fake):
        fake.invoke_status = 500
        await agent.initialize()

        with pytest.raises(AgentUnavailable):
            await agent.invoke(AUTO_MONITOR_TOPIC, "text")

    @pytest.mark.asyncio
    async def test_missing_issues_raises_malformed(self, agent, fake):
        fake.invoke_body = {"summary": "done"}
        await agent.initialize()

        with pytest.raises(MalformedResponse):
            await agent.invoke(AUTO_MONITOR_TOPIC, "text")

    @pytest.mark.asyncio
    async def test_mock_mode_makes_no_calls(self, agent, fake):
        agent.enable_mock_mode()

        response = await agent.invoke(AUTO_MONITOR_TOPIC, "patient diagnosis")

        assert fake.requests == []
        assert [issue.type for issue in response.issues] == ["HIPAA"]


class TestCreateIncident:
    @pytest.mark.asyncio
    async def test_creates_record(self, agent, fake):
        await agent.initialize()

        incident_id = await agent.create_incident(_incident())

        assert incident_id == "a01XYZ"
        request = fake.requests[-1]
        assert request.url.path == "/services/data/v58.0/sobjects/Compliance_Incident__c/"
        fields = json.loads(request.content)
        assert fields["Type__c"] == "HIPAA;PCI-DSS"
        assert fields["Severity__c"] == "Critical"
        assert fields["Status__c"] == "Open"
        assert fields["Channel__c"] == "C1"

    @pytest.mark.asyncio
    async def test_mock_mode_returns_mock_id(self, agent, fake):
        agent.enable_mock_mode()

        incident_id = await agent.create_incident(_incident())

        assert incident_id.startswith("mock-id-")
        assert incident_id[len("mock-id-"):].isdigit()
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_unauthenticated_returns_error_id(self, agent):
        incident_id = await agent.create_incident(_incident())
        assert incident_id.startswith("mock-error-id-")

    @pytest.mark.asyncio
    async def test_rejected_record_returns_error_id(self, agent, fake):
        fake.create_body = {"success": False, "errors": ["REQUIRED_FIELD_MISSING"]}
        await agent.initialize()

        incident_id = await agent.create_incident(_incident())

        assert incident_id.startswith("mock-error-id-")


class TestSimulatedResponse:
    def test_hipaa_is_high_everything_else_medium(self):
        response = simulate_agent_response(
            "patient a@b.com password 4111111111111111"
        )
        pairs = [(issue.type, issue.severity) for issue in response.issues]
        assert pairs == [
            ("GDPR-PII", Severity.MEDIUM),
            ("HIPAA", Severity.HIGH),
            ("Info Security", Severity.MEDIUM),
            ("PCI-DSS", Severity.MEDIUM),
        ]
        assert response.summary == "Found 4 potential compliance issue(s)"

    def test_no_ssn_or_confidential_rules(self):
        response = simulate_agent_response("SSN 123-45-6789, confidential")
        assert response.issues == []
        assert response.summary == "No compliance issues detected"

    def test_card_keywords_alone_do_not_match(self):
        assert simulate_agent_response("credit card cvv").issues == []

    def test_structured_input_is_serialized(self):
        response = simulate_agent_response({"command": "audit", "targetType": "channel", "targetId": "C1"})
        assert response.issues == []
        assert response.status == "completed"

    def test_none_input(self):
        assert simulate_agent_response(None).issues == []
