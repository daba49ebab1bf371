"""
Compliance Schemas

Issue: one detected compliance concern (category, severity, detail).
Incident: the record created in the case-management store for one
positive scan.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, Field, field_validator

from ..errors import MalformedResponse


# ============================================================================
# Enums
# ============================================================================

class Severity(str, Enum):
    """Ranked severity levels: Low < Medium < High < Critical"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Case-insensitive lookup by label; raises ValueError when unknown"""
        if isinstance(value, Severity):
            return value
        label = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        raise ValueError(f"Unknown severity: {value!r}")

    @classmethod
    def max_of(cls, severities: Iterable["Severity"], default: "Severity" = None) -> "Severity":
        """Highest severity by rank, or ``default`` for an empty input"""
        result = default
        for severity in severities:
            if result is None or severity > result:
                result = severity
        return result


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class IncidentStatus(str, Enum):
    """Incident lifecycle status. Only OPEN is ever created here."""
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


# ============================================================================
# Models
# ============================================================================

class Issue(BaseModel):
    """One detected compliance concern"""
    type: str = Field(..., min_length=1, description="Category tag, e.g. HIPAA, PCI-DSS")
    severity: Severity
    detail: str = Field(default="", description="What was matched")

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value):
        return Severity.parse(value)

    @classmethod
    def from_raw(cls, raw: Any) -> "Issue":
        """
        Normalize an issue object returned by the classifier or agent.

        Raises:
            MalformedResponse: if the object is not a mapping or lacks a
                usable type or severity
        """
        if isinstance(raw, Issue):
            return raw
        if not isinstance(raw, dict):
            raise MalformedResponse(f"Issue must be an object, got {type(raw).__name__}")

        issue_type = str(raw.get("type") or "").strip()
        if not issue_type:
            raise MalformedResponse("Issue is missing 'type'")
        try:
            severity = Severity.parse(raw.get("severity"))
        except ValueError as e:
            raise MalformedResponse(str(e)) from e

        return cls(
            type=issue_type,
            severity=severity,
            detail=str(raw.get("detail") or ""),
        )


def parse_issues(raw_issues: List[Any]) -> List[Issue]:
    """Normalize a list of raw issue objects, preserving order"""
    return [Issue.from_raw(raw) for raw in raw_issues]


class AgentResponse(BaseModel):
    """Parsed response of a rules-agent invocation"""
    issues: List[Issue] = Field(default_factory=list)
    summary: str = ""
    status: str = "completed"


class Incident(BaseModel):
    """
    Compliance incident created once per positive scan.

    ``types`` is list-valued: a single-category incident holds one entry,
    a combined incident holds every detected category.
    """
    types: List[str] = Field(..., min_length=1)
    severity: Severity
    description: str
    slack_message_link: str = ""
    user: str = ""
    channel: str = ""
    status: IncidentStatus = Field(default=IncidentStatus.OPEN)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def type_label(self) -> str:
        """Types joined for stores that take a single field"""
        return ";".join(self.types)

    def to_store_fields(self) -> Dict[str, Any]:
        """Field mapping of the Compliance_Incident__c record"""
        return {
            "Type__c": self.type_label,
            "Severity__c": self.severity.value,
            "Description__c": self.description,
            "Slack_Message_Link__c": self.slack_message_link,
            "User_Involved__c": self.user,
            "Channel__c": self.channel,
            "Status__c": self.status.value,
            "Timestamp__c": self.timestamp.isoformat(),
        }
