"""
Tests for the local pattern matcher

The matcher is the terminal fallback tier, so it must be deterministic and
never raise.
"""

import pytest

from auditor.common.schemas import Issue, Severity
from auditor.scanner.pattern_matcher import (
    PATTERN_RULES,
    PatternRule,
    scan_locally,
)


def _pairs(issues):
    return {(issue.type, issue.severity) for issue in issues}


class TestEmptyContent:
    @pytest.mark.parametrize("content", ["", None])
    def test_empty_returns_no_issues(self, content):
        assert scan_locally(content) == []

    def test_non_string_returns_no_issues(self):
        assert scan_locally(12345) == []

    def test_clean_text(self):
        assert scan_locally("Lunch at noon? The new office plants look great.") == []


class TestEmailRule:
    @pytest.mark.parametrize("address", [
        "alice@example.com",
        "first.last+tag@sub.domain.org",
        "X_Y-Z%1@corp.co.uk",
    ])
    def test_email_is_gdpr_medium(self, address):
        issues = scan_locally(f"reach me at {address} tomorrow")
        assert ("GDPR-PII", Severity.MEDIUM) in _pairs(issues)

    def test_email_detail(self):
        issues = scan_locally("bob@example.com")
        assert issues == [Issue(type="GDPR-PII", severity=Severity.MEDIUM, detail="Email address detected")]


class TestCardAndCredential:
    def test_visa_and_password_yield_exactly_two(self):
        issues = scan_locally("Use 4111111111111111 and the password hunter2")
        assert len(issues) == 2
        assert _pairs(issues) == {
            ("PCI-DSS", Severity.CRITICAL),
            ("Security-Credentials", Severity.CRITICAL),
        }

    @pytest.mark.parametrize("number", [
        "4111111111111111",   # Visa
        "5500000000000004",   # Mastercard
        "340000000000009",    # Amex
        "30000000000004",     # Diners Club
        "6011000000000004",   # Discover
    ])
    def test_card_numbers(self, number):
        issues = scan_locally(f"charge {number} now")
        assert ("PCI-DSS", Severity.CRITICAL) in _pairs(issues)

    @pytest.mark.parametrize("phrase", ["credit card", "CVV", "Expiration Date", "card number"])
    def test_card_keywords(self, phrase):
        issues = scan_locally(f"please send the {phrase}")
        assert ("PCI-DSS", Severity.CRITICAL) in _pairs(issues)


class TestOtherRules:
    def test_ssn_is_hipaa_pii_high(self):
        issues = scan_locally("SSN 123-45-6789 on file")
        assert ("HIPAA/PII", Severity.HIGH) in _pairs(issues)

    def test_healthcare_is_hipaa_high(self):
        issues = scan_locally("The Patient was seen yesterday")
        assert _pairs(issues) == {("HIPAA", Severity.HIGH)}

    def test_confidential_marker(self):
        issues = scan_locally("This deck is INTERNAL ONLY")
        assert _pairs(issues) == {("Internal Policy", Severity.MEDIUM)}

    def test_card_number_is_not_an_ssn(self):
        issues = scan_locally("4111111111111111")
        assert [issue.type for issue in issues] == ["PCI-DSS"]


class TestRuleOrdering:
    def test_one_issue_per_rule(self):
        issues = scan_locally("a@b.com c@d.com e@f.com")
        assert len(issues) == 1

    def test_issues_follow_rule_order(self):
        content = "confidential: patient a@b.com password 4111111111111111 123-45-6789"
        issues = scan_locally(content)
        assert [issue.type for issue in issues] == [rule.type for rule in PATTERN_RULES]

    def test_deterministic(self):
        content = "patient token a@b.com"
        assert scan_locally(content) == scan_locally(content)

    def test_custom_rules(self):
        import re

        rule = PatternRule("iban", re.compile(r"\bDE\d{20}\b"), "Banking", Severity.HIGH, "IBAN detected")
        issues = scan_locally("DE89370400440532013000 patient", rules=[rule])
        assert issues == [Issue(type="Banking", severity=Severity.HIGH, detail="IBAN detected")]
