"""
Pattern Matcher

Local regex-based compliance detection. This is the terminal fallback tier:
it performs no I/O and never raises.

Each rule contributes at most one Issue no matter how many times it
matches. Rules are evaluated independently and in a fixed order.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from ..common.schemas import Issue, Severity


@dataclass(frozen=True)
class PatternRule:
    """A single detection rule"""
    name: str
    regex: Pattern
    type: str
    severity: Severity
    detail: str

    def matches(self, content: str) -> bool:
        return self.regex.search(content) is not None

    def to_issue(self) -> Issue:
        return Issue(type=self.type, severity=self.severity, detail=self.detail)


EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

SSN_PATTERN = re.compile(r"\b\d{3}[-.\s]?\d{2}[-.\s]?\d{4}\b")

HEALTHCARE_PATTERN = re.compile(
    r"patient|medical record|diagnosis|treatment|health record|medication|health|doctor",
    re.IGNORECASE,
)

CREDENTIAL_PATTERN = re.compile(
    r"password|secret|key|token|credential|api key|private key|access key|ssh key",
    re.IGNORECASE,
)

# Visa, Mastercard, Amex, Diners Club, Discover, JCB
CARD_NUMBER_PATTERN = re.compile(
    r"\b(?:4[0-9]{12}(?:[0-9]{3})?"
    r"|5[1-5][0-9]{14}"
    r"|3[47][0-9]{13}"
    r"|3(?:0[0-5]|[68][0-9])[0-9]{11}"
    r"|6(?:011|5[0-9]{2})[0-9]{12}"
    r"|(?:2131|1800|35\d{3})\d{11})\b"
)

CARD_PATTERN = re.compile(
    CARD_NUMBER_PATTERN.pattern
    + r"|credit card|card number|cvv|exp date|expiration date|card verification",
    re.IGNORECASE,
)

CONFIDENTIAL_PATTERN = re.compile(
    r"confidential|top secret|internal only|do not share",
    re.IGNORECASE,
)


PATTERN_RULES: List[PatternRule] = [
    PatternRule("email", EMAIL_PATTERN, "GDPR-PII", Severity.MEDIUM, "Email address detected"),
    PatternRule("ssn", SSN_PATTERN, "HIPAA/PII", Severity.HIGH, "SSN pattern detected"),
    PatternRule("healthcare", HEALTHCARE_PATTERN, "HIPAA", Severity.HIGH, "Healthcare information detected"),
    PatternRule("credentials", CREDENTIAL_PATTERN, "Security-Credentials", Severity.CRITICAL, "Security credential detected"),
    PatternRule("payment_card", CARD_PATTERN, "PCI-DSS", Severity.CRITICAL, "Credit card information detected"),
    PatternRule("confidential", CONFIDENTIAL_PATTERN, "Internal Policy", Severity.MEDIUM, "Confidential information marker detected"),
]


def scan_locally(content: Optional[str], rules: Optional[List[PatternRule]] = None) -> List[Issue]:
    """
    Scan content against the local rule set.

    Args:
        content: Text to scan (None or empty yields no issues)
        rules: Rule set override (defaults to PATTERN_RULES)

    Returns:
        One Issue per matching rule, in rule order
    """
    if not content or not isinstance(content, str):
        return []

    active_rules = PATTERN_RULES if rules is None else rules
    return [rule.to_issue() for rule in active_rules if rule.matches(content)]
