"""
Compliance Auditor

Slack bot that scans messages and shared files for regulated content
(healthcare, payment card, credentials, personal data) and raises
compliance incidents in Salesforce.

Detection runs through three fallback tiers:
- Remote classifier (LLM, structured JSON output)
- Rules agent (Salesforce Agentforce invocation)
- Local pattern matcher (regex, always available)

Usage:
    from auditor.common import load_config, configure_logging
    from auditor.common.schemas import Issue, Severity, Incident
    from auditor.scanner import ClassificationOrchestrator, scan_locally, summarize
"""

__version__ = "0.1.0"
