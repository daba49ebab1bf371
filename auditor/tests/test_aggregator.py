"""
Tests for issue aggregation: combined severity, narrative text, reports
and notification texts.
"""

import re
import pytest
from collections import Counter

from auditor.common.schemas import Issue, Severity
from auditor.scanner.aggregator import (
    REMEDIATION,
    combined_severity,
    combined_types,
    detect_categories,
    file_notification,
    filename_notification,
    format_issues_report,
    incident_severity,
    join_phrases,
    message_notification,
    summarize,
)


def issue(type_, severity, detail=""):
    return Issue(type=type_, severity=severity, detail=detail)


HIPAA = issue("HIPAA", Severity.HIGH, "Healthcare information detected")
PCI = issue("PCI-DSS", Severity.CRITICAL, "Credit card information detected")
CREDS = issue("Security-Credentials", Severity.CRITICAL, "Security credential detected")
EMAIL = issue("GDPR-PII", Severity.MEDIUM, "Email address detected")


class TestCombinedSeverity:
    @pytest.mark.parametrize("issues", [[HIPAA, PCI], [PCI, HIPAA]])
    def test_pci_outranks_hipaa_in_any_order(self, issues):
        assert combined_severity(issues) == Severity.CRITICAL

    def test_credentials_are_critical(self):
        assert combined_severity([EMAIL, CREDS]) == Severity.CRITICAL

    def test_hipaa_is_high(self):
        assert combined_severity([HIPAA, EMAIL]) == Severity.HIGH

    def test_other_content_is_medium(self):
        assert combined_severity([EMAIL]) == Severity.MEDIUM
        assert combined_severity([issue("Internal Policy", Severity.MEDIUM, "marker")]) == Severity.MEDIUM

    def test_per_issue_severity_is_ignored(self):
        assert combined_severity([issue("HIPAA", Severity.LOW, "x")]) == Severity.HIGH

    def test_detail_text_sets_categories(self):
        flags = detect_categories([issue("Custom", Severity.LOW, "Credit card and password in healthcare email")])
        assert flags.hipaa and flags.pci and flags.security and flags.pii

    def test_hipaa_pii_counts_as_hipaa_and_pii(self):
        flags = detect_categories([issue("HIPAA/PII", Severity.HIGH, "SSN pattern detected")])
        assert flags.hipaa and flags.pii
        assert not flags.pci and not flags.security


class TestIncidentValues:
    def test_incident_severity_keeps_individual_maximum(self):
        assert incident_severity([issue("Internal Policy", Severity.CRITICAL, "marker")]) == Severity.CRITICAL

    def test_incident_severity_uses_category_rule(self):
        assert incident_severity([issue("PCI-DSS", Severity.MEDIUM, "card")]) == Severity.CRITICAL

    def test_incident_severity_empty(self):
        assert incident_severity([]) == Severity.MEDIUM

    def test_combined_types_precedence(self):
        assert combined_types([EMAIL, CREDS, HIPAA]) == ["HIPAA", "Security-Credentials", "GDPR-PII"]

    def test_combined_types_without_categories(self):
        marker = issue("Internal Policy", Severity.MEDIUM, "Confidential information marker detected")
        assert combined_types([marker, marker]) == ["Internal Policy"]


class TestNarrative:
    def test_hipaa_only_narrative(self):
        summary = summarize([HIPAA])

        text = summary.narrative_text
        assert "healthcare information (HIPAA regulated data)" in text
        assert REMEDIATION["HIPAA"] in text
        assert REMEDIATION["PCI-DSS"] not in text
        assert REMEDIATION["Security-Credentials"] not in text
        assert REMEDIATION["GDPR-PII"] not in text
        assert "Overall severity: High." in text
        assert summary.severity == Severity.HIGH

    def test_sentence_order(self):
        text = summarize([PCI, EMAIL], subject="file").narrative_text

        assert text.startswith(
            "This file contains payment card information (PCI-DSS regulated data) and other personal data."
        )
        assert "Specifically detected: Credit card information detected, Email address detected." in text
        assert text.index(REMEDIATION["PCI-DSS"]) < text.index(REMEDIATION["GDPR-PII"])
        assert text.endswith(
            "Please ensure this file is properly secured and only shared with authorized personnel."
        )

    def test_pii_alone_is_described_fully(self):
        text = summarize([EMAIL]).narrative_text
        assert "personally identifiable information (PII protected under privacy regulations)" in text

    def test_three_categories_use_serial_comma(self):
        text = summarize([HIPAA, PCI, CREDS]).narrative_text
        assert (
            "healthcare information (HIPAA regulated data), payment card information "
            "(PCI-DSS regulated data), and security credentials or passwords." in text
        )

    def test_join_phrases(self):
        assert join_phrases([]) == ""
        assert join_phrases(["a"]) == "a"
        assert join_phrases(["a", "b"]) == "a and b"
        assert join_phrases(["a", "b", "c"]) == "a, b, and c"


class TestReport:
    def _regroup(self, report):
        return {
            match.group(1): int(match.group(2))
            for match in re.finditer(r"^\*(.+)\*: (\d+) issue\(s\)$", report, re.MULTILINE)
        }

    def test_report_counts_match_grouping(self):
        issues = [HIPAA, EMAIL, HIPAA, PCI, EMAIL, HIPAA]

        report = format_issues_report(issues, "channel", "C123")

        assert self._regroup(report) == dict(Counter(i.type for i in issues))

    def test_report_layout(self):
        report = format_issues_report([HIPAA, HIPAA, PCI], "channel", "C123")
        lines = report.split("\n")

        assert lines[0] == ":warning: I found 3 potential compliance issue(s) in <#C123>:"
        assert lines[1] == ""
        assert lines[2] == "*HIPAA*: 2 issue(s)"
        assert lines[3] == "- Healthcare information detected"
        assert lines[4] == "- And 1 more similar issue(s)"
        assert lines[5] == "*PCI-DSS*: 1 issue(s)"
        assert lines[7] == ""
        assert lines[8].startswith("Please review and address these compliance concerns.")

    def test_user_target(self):
        report = format_issues_report([EMAIL], "user", "U42")
        assert report.startswith(":warning: I found 1 potential compliance issue(s) in <@U42>:")


class TestNotifications:
    def test_message_notification(self):
        text = message_notification([HIPAA, EMAIL], "C9", "Dana Lee")

        assert text.startswith("Hello Dana Lee, I noticed you shared something in <#C9>")
        assert "HIPAA, GDPR-PII" in text
        assert "protected under HIPAA regulations" in text
        assert "Severity: High." in text
        assert "(1 additional issue types also detected)" in text

    def test_message_notification_without_name(self):
        text = message_notification([CREDS], "C9")
        assert text.startswith("Hello there,")
        assert "significant security risk" in text
        assert "additional issue types" not in text

    def test_file_notification(self):
        text = file_notification([PCI], "cards.csv")
        assert text.startswith('Hello, I noticed you shared a file "cards.csv" that contains sensitive information.')
        assert "This file contains payment card information" in text
        assert "Overall severity: Critical." in text

    def test_filename_notification(self):
        hint = issue("HIPAA", Severity.HIGH, "Potential patient data in file name")
        text = filename_notification(hint, "patient_list.pdf")
        assert '"patient_list.pdf"' in text
        assert "HIPAA regulations" in text
        assert "Severity: High." in text
