"""
File Inspector

Helpers for shared files: which mimetypes get their content scanned, and
filename heuristics used alongside (or instead of) content scanning.
"""

from typing import List, Optional

from ..common.schemas import Issue, Severity

SCANNABLE_MIMETYPE_MARKERS = ("text", "csv", "json", "plain")

# (keywords, type, severity, detail), first match wins
FILENAME_RULES = [
    (("patient", "medical", "health"), "HIPAA", Severity.HIGH,
     "Potential patient data in file name"),
    (("credit", "card", "payment"), "PCI-DSS", Severity.CRITICAL,
     "Potential payment card data in file name"),
    (("password", "secret", "credential"), "Security-Credentials", Severity.CRITICAL,
     "Potential security credentials in file name"),
    (("customer", "personal", "email"), "GDPR-PII", Severity.MEDIUM,
     "Potential personal data in file name"),
]


def is_scannable(mimetype: Optional[str]) -> bool:
    """True for text-like files whose content can be downloaded and scanned"""
    if not mimetype:
        return False
    return any(marker in mimetype for marker in SCANNABLE_MIMETYPE_MARKERS)


def inspect_filename(file_name: Optional[str]) -> List[Issue]:
    """Filename-only check: at most one issue, from the first matching rule"""
    name = (file_name or "").lower()
    for keywords, issue_type, severity, detail in FILENAME_RULES:
        if any(keyword in name for keyword in keywords):
            return [Issue(type=issue_type, severity=severity, detail=detail)]
    return []


def supplement_with_filename(file_name: Optional[str], issues: List[Issue]) -> List[Issue]:
    """
    Add filename-based healthcare or personal-data hints to content issues.

    A hint is only added when content detection has not already produced
    that category. Payment and credential names are not considered here.

    Returns:
        A new list: the content issues followed by at most one hint
    """
    name = (file_name or "").lower()
    result = list(issues)

    if any(keyword in name for keyword in ("patient", "medical", "health")):
        if not any(issue.type == "HIPAA" for issue in result):
            result.append(Issue(type="HIPAA", severity=Severity.HIGH,
                                detail="Potential patient data in file name"))
    elif any(keyword in name for keyword in ("customer", "personal", "email")):
        if not any("GDPR" in issue.type for issue in result):
            result.append(Issue(type="GDPR-PII", severity=Severity.MEDIUM,
                                detail="Potential personal data in file name"))

    return result


def primary_issue(issues: List[Issue]) -> Optional[Issue]:
    """Highest-severity issue; the earliest one wins ties"""
    primary = None
    for issue in issues:
        if primary is None or issue.severity > primary.severity:
            primary = issue
    return primary
