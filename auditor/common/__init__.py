"""
Compliance Auditor Common Module

Shared infrastructure: configuration, logging, errors, schemas, and the
LLM and Slack clients.
"""

from .config import AuditorConfig, load_config
from .errors import ComplianceError, ClassifierUnavailable, AgentUnavailable, MalformedResponse
from .llm_client import LLMClient
from .logging_setup import configure_logging
from .slack_client import SlackClient, SlackAPIError

__all__ = [
    "AuditorConfig",
    "load_config",
    "ComplianceError",
    "ClassifierUnavailable",
    "AgentUnavailable",
    "MalformedResponse",
    "LLMClient",
    "configure_logging",
    "SlackClient",
    "SlackAPIError",
]
