"""
Issue Aggregator

Turns a list of issues into the texts and values the bot sends out:

- combined severity (category rule, independent of per-issue severity)
- narrative notification text with remediation advice
- grouped report text for slash commands and mentions
- incident types and severity
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..common.schemas import Issue, Severity


CATEGORY_HIPAA = "HIPAA"
CATEGORY_PCI = "PCI-DSS"
CATEGORY_SECURITY = "Security-Credentials"
CATEGORY_PII = "GDPR-PII"

REMEDIATION = {
    CATEGORY_HIPAA: "Healthcare data must be encrypted and only shared with authorized personnel under HIPAA regulations.",
    CATEGORY_PCI: "Payment card information must be encrypted and handled according to PCI-DSS requirements.",
    CATEGORY_SECURITY: "Please revoke and rotate any credentials that may have been exposed immediately.",
    CATEGORY_PII: "Please ensure you have appropriate consent and data processing agreements in place for personal data.",
}

# First-issue guidance for message notifications, checked in this order
MESSAGE_GUIDANCE = [
    (("HIPAA",), "Healthcare information is protected under HIPAA regulations and requires special handling."),
    (("GDPR", "PII"), "Personal identifiable information is protected under privacy regulations like GDPR."),
    (("PCI",), "Payment card information must be handled according to PCI-DSS standards."),
    (("Security",), "Sharing credentials or secrets in chat channels poses a significant security risk."),
]

FILENAME_GUIDANCE = {
    "HIPAA": "The filename suggests it may contain healthcare or patient information that falls under HIPAA regulations.",
    "PCI-DSS": "The filename suggests it may contain payment card information that falls under PCI-DSS standards.",
    "Security-Credentials": "The filename suggests it may contain security credentials or secrets.",
    "GDPR-PII": "The filename suggests it may contain personal data that falls under GDPR regulations.",
}

REPORT_CLOSING = (
    "Please review and address these compliance concerns. Remember that sharing "
    "sensitive information in public channels may violate company policy or regulations."
)


@dataclass
class CategoryFlags:
    """Which compliance categories a batch of issues touches"""
    hipaa: bool = False
    pci: bool = False
    security: bool = False
    pii: bool = False

    @property
    def any(self) -> bool:
        return self.hipaa or self.pci or self.security or self.pii

    def categories(self) -> List[str]:
        """Present categories in fixed precedence order"""
        present = []
        if self.hipaa:
            present.append(CATEGORY_HIPAA)
        if self.pci:
            present.append(CATEGORY_PCI)
        if self.security:
            present.append(CATEGORY_SECURITY)
        if self.pii:
            present.append(CATEGORY_PII)
        return present


@dataclass
class Summary:
    """Aggregated view of one scan"""
    severity: Severity
    narrative_text: str
    categories: CategoryFlags


def detect_categories(issues: List[Issue]) -> CategoryFlags:
    """Derive category flags from issue types and detail text"""
    flags = CategoryFlags()
    for issue in issues:
        detail = (issue.detail or "").lower()
        if "HIPAA" in issue.type or "healthcare" in detail:
            flags.hipaa = True
        if "PCI" in issue.type or "credit card" in detail:
            flags.pci = True
        if "Security" in issue.type or "password" in detail or "credential" in detail:
            flags.security = True
        if "PII" in issue.type or "GDPR" in issue.type or "email" in detail:
            flags.pii = True
    return flags


def combined_severity(issues: List[Issue]) -> Severity:
    """
    Overall severity of a batch.

    Payment card or credential content is Critical, otherwise healthcare
    content is High, otherwise Medium. Per-issue severities are ignored.
    """
    flags = detect_categories(issues)
    if flags.pci or flags.security:
        return Severity.CRITICAL
    if flags.hipaa:
        return Severity.HIGH
    return Severity.MEDIUM


def incident_severity(issues: List[Issue]) -> Severity:
    """Highest of the combined severity and every individual severity"""
    if not issues:
        return Severity.MEDIUM
    return Severity.max_of(
        [combined_severity(issues)] + [issue.severity for issue in issues]
    )


def combined_types(issues: List[Issue]) -> List[str]:
    """Incident types: detected categories, else the distinct issue types"""
    categories = detect_categories(issues).categories()
    if categories:
        return categories
    return list(group_by_type(issues).keys())


def join_phrases(items: List[str]) -> str:
    """'a', 'a and b', 'a, b, and c'"""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"


def _category_descriptions(flags: CategoryFlags) -> List[str]:
    descriptions = []
    if flags.hipaa:
        descriptions.append("healthcare information (HIPAA regulated data)")
    if flags.pci:
        descriptions.append("payment card information (PCI-DSS regulated data)")
    if flags.security:
        descriptions.append("security credentials or passwords")
    if flags.pii:
        if flags.hipaa or flags.pci or flags.security:
            descriptions.append("other personal data")
        else:
            descriptions.append("personally identifiable information (PII protected under privacy regulations)")
    return descriptions


def summarize(issues: List[Issue], subject: str = "content") -> Summary:
    """
    Build the combined severity and narrative text for a batch of issues.

    Args:
        issues: Issues from one scan
        subject: What was scanned, used in the narrative ("content", "file")

    Returns:
        Summary with severity, narrative text and category flags
    """
    flags = detect_categories(issues)
    severity = combined_severity(issues)

    parts = []
    descriptions = _category_descriptions(flags)
    if descriptions:
        parts.append(f"This {subject} contains {join_phrases(descriptions)}.")

    parts.append(f"Specifically detected: {', '.join(issue.detail for issue in issues)}.")
    parts.append(f"Overall severity: {severity.value}.")

    for category in flags.categories():
        parts.append(REMEDIATION[category])

    parts.append(f"Please ensure this {subject} is properly secured and only shared with authorized personnel.")

    return Summary(severity=severity, narrative_text=" ".join(parts), categories=flags)


def group_by_type(issues: List[Issue]) -> Dict[str, List[Issue]]:
    """Group issues by type, keeping first-seen order"""
    groups: Dict[str, List[Issue]] = {}
    for issue in issues:
        groups.setdefault(issue.type, []).append(issue)
    return groups


def _format_target(target_type: str, target_id: Optional[str]) -> str:
    if target_type == "channel":
        return f"<#{target_id}>"
    if target_type == "user":
        return f"<@{target_id}>"
    return "the file"


def format_issues_report(issues: List[Issue], target_type: str, target_id: Optional[str] = None) -> str:
    """
    Render a grouped report for command and mention replies.

    Args:
        issues: Issues to report
        target_type: "channel", "user", or "file"
        target_id: Channel or user id for the target mention

    Returns:
        Slack-formatted report text
    """
    target = _format_target(target_type, target_id)
    lines = [f":warning: I found {len(issues)} potential compliance issue(s) in {target}:", ""]

    for issue_type, group in group_by_type(issues).items():
        lines.append(f"*{issue_type}*: {len(group)} issue(s)")
        lines.append(f"- {group[0].detail}")
        if len(group) > 1:
            lines.append(f"- And {len(group) - 1} more similar issue(s)")

    lines.append("")
    lines.append(REPORT_CLOSING)
    return "\n".join(lines)


def message_notification(issues: List[Issue], channel: str, user_name: Optional[str] = None) -> str:
    """DM text for a flagged channel message; guidance follows the first issue"""
    types = ", ".join(issue.type for issue in issues)
    parts = [
        f"Hello {user_name or 'there'}, I noticed you shared something in <#{channel}> "
        f"that might contain sensitive information: {types}."
    ]

    main_issue = issues[0]
    for markers, guidance in MESSAGE_GUIDANCE:
        if any(marker in main_issue.type for marker in markers):
            parts.append(guidance)
            break

    parts.append(f"Severity: {main_issue.severity.value}.")
    if len(issues) > 1:
        parts.append(f"({len(issues) - 1} additional issue types also detected)")
    parts.append("Please be careful about sharing such information in public channels.")
    return " ".join(parts)


def file_notification(issues: List[Issue], file_name: str) -> str:
    """DM text for a shared file whose content (or name) was flagged"""
    summary = summarize(issues, subject="file")
    return (
        f'Hello, I noticed you shared a file "{file_name}" that contains sensitive information. '
        f"{summary.narrative_text}"
    )


def filename_notification(issue: Issue, file_name: str) -> str:
    """DM text when only the file name could be checked"""
    parts = [
        f'Hello, I noticed you shared a file "{file_name}" with a name that suggests '
        "it might contain sensitive information."
    ]
    guidance = FILENAME_GUIDANCE.get(issue.type)
    if guidance:
        parts.append(guidance)
    parts.append(
        "I couldn't scan the file contents because it's not a supported file type, "
        "but please be cautious with files that may contain regulated data."
    )
    parts.append(f"Severity: {issue.severity.value}.")
    parts.append("Please ensure this file is properly secured and only shared with authorized personnel.")
    return " ".join(parts)
