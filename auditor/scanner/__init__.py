"""
Scanner - Compliance Monitoring

Watches Slack activity and classifies it for regulated content.

Key Components:
- ClassificationOrchestrator: Fallback chain (classifier -> rules agent -> patterns)
- RemoteClassifier: LLM classifier with mock mode
- RulesAgentClient: Salesforce rules agent and incident store
- scan_locally: Regex matcher, always available
- summarize / format_issues_report: Issue aggregation and reporting
- ComplianceMonitor: Event pipeline (scan, notify, record incident)
- AuditService: /compliance-audit command and mention answers
"""

from .pattern_matcher import PatternRule, PATTERN_RULES, scan_locally
from .classifier import RemoteClassifier, generate_mock_results
from .rules_agent import RulesAgentClient, simulate_agent_response, AUTO_MONITOR_TOPIC, MANUAL_AUDIT_TOPIC
from .orchestrator import ClassificationOrchestrator, DetectionSource, ScanOutcome
from .aggregator import (
    Summary,
    summarize,
    combined_severity,
    incident_severity,
    format_issues_report,
)
from .file_inspector import inspect_filename, is_scannable
from .audit import AuditService, parse_target
from .monitor import ComplianceMonitor

__all__ = [
    "PatternRule",
    "PATTERN_RULES",
    "scan_locally",
    "RemoteClassifier",
    "generate_mock_results",
    "RulesAgentClient",
    "simulate_agent_response",
    "AUTO_MONITOR_TOPIC",
    "MANUAL_AUDIT_TOPIC",
    "ClassificationOrchestrator",
    "DetectionSource",
    "ScanOutcome",
    "Summary",
    "summarize",
    "combined_severity",
    "incident_severity",
    "format_issues_report",
    "inspect_filename",
    "is_scannable",
    "AuditService",
    "parse_target",
    "ComplianceMonitor",
]
