"""
Compliance Auditor Schemas

Issue, Incident and agent response models shared by every detection tier.
"""

from .compliance import (
    Severity,
    IncidentStatus,
    Issue,
    AgentResponse,
    Incident,
    parse_issues,
)

__all__ = [
    "Severity",
    "IncidentStatus",
    "Issue",
    "AgentResponse",
    "Incident",
    "parse_issues",
]
