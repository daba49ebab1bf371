"""
Remote Compliance Classifier

First detection tier. Sends content to an LLM with a fixed compliance
prompt and parses the structured JSON reply into Issues.

Live mode never degrades silently: any call or parse failure is raised as
ClassifierUnavailable so the orchestrator can fall through to the next tier.
Mock mode answers from a small keyword table without any network call.
"""

import logging
from typing import List, Optional

from ..common.config import LLMConfig
from ..common.errors import ClassifierUnavailable, MalformedResponse
from ..common.llm_client import LLMClient
from ..common.llm_utils import parse_llm_json, extract_issue_list
from ..common.schemas import Issue, Severity, parse_issues

logger = logging.getLogger("auditor.scanner.classifier")


SYSTEM_INSTRUCTION = (
    "You are a compliance detection system specializing in identifying "
    "sensitive information in text content."
)

COMPLIANCE_PROMPT = """
Analyze the following content for compliance issues related to:
1. HIPAA (healthcare information)
2. PCI-DSS (payment card information)
3. Security Credentials (passwords, API keys, tokens)
4. GDPR-PII (personally identifiable information)

Content to analyze:
---
{content}
---

For each issue you detect, provide the following information in your analysis:
- type: The category of the issue (HIPAA, PCI-DSS, Security-Credentials, or GDPR-PII)
- severity: The severity of the issue (Medium, High, or Critical)
- detail: A specific description of what was detected

Return your findings as a JSON object with this format:
{{
  "issues": [
    {{
      "type": "type-of-issue",
      "severity": "severity-level",
      "detail": "description-of-detected-issue"
    }}
  ]
}}

If no issues are found, return an empty issues array.
Use these severity guidelines:
- Critical: For PCI-DSS and security credentials
- High: For HIPAA
- Medium: For GDPR-PII

Be thorough but avoid false positives.
"""

# (keywords, type, severity, detail)
MOCK_KEYWORD_RULES = [
    (("patient", "medical", "health"), "HIPAA", Severity.HIGH,
     "Healthcare information detected"),
    (("credit card", "visa", "mastercard"), "PCI-DSS", Severity.CRITICAL,
     "Credit card information detected"),
    (("password", "api key", "token"), "Security-Credentials", Severity.CRITICAL,
     "Security credential detected"),
    (("email", "@", "address"), "GDPR-PII", Severity.MEDIUM,
     "Email address or personal information detected"),
]


def build_compliance_prompt(content: str) -> str:
    """Render the classifier prompt for one content unit"""
    return COMPLIANCE_PROMPT.format(content=content)


def generate_mock_results(content: str) -> List[Issue]:
    """Keyword heuristics used in mock mode"""
    text = (content or "").lower()
    issues = []
    for keywords, issue_type, severity, detail in MOCK_KEYWORD_RULES:
        if any(keyword in text for keyword in keywords):
            issues.append(Issue(type=issue_type, severity=severity, detail=detail))
    return issues


class RemoteClassifier:
    """
    LLM-backed compliance classifier with a mock mode.

    Mode is instance state. ``enable_mock_mode`` always succeeds;
    ``disable_mock_mode`` only succeeds when the LLM client is usable.
    """

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        max_tokens: int = 1024,
        timeout: float = 30.0,
    ):
        self._llm = llm
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._mock_mode = not self._live_ready

        if self._mock_mode:
            logger.warning("LLM client unavailable, classifier will use mock mode")

    @classmethod
    def from_config(cls, llm_config: LLMConfig) -> "RemoteClassifier":
        llm = LLMClient(
            provider=llm_config.provider,
            model=llm_config.model,
            api_key=llm_config.api_key or None,
            temperature=llm_config.temperature,
        )
        return cls(llm=llm, timeout=llm_config.timeout)

    @property
    def _live_ready(self) -> bool:
        return self._llm is not None and self._llm.is_available

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def enable_mock_mode(self) -> None:
        self._mock_mode = True
        logger.info("Classifier running in mock mode")

    def disable_mock_mode(self) -> bool:
        """Switch to live mode if the LLM client is usable"""
        if not self._live_ready:
            logger.warning("Cannot disable mock mode: LLM client not available")
            return False
        self._mock_mode = False
        logger.info("Classifier running in live mode")
        return True

    def analyze(self, content: str) -> List[Issue]:
        """
        Classify content for compliance issues.

        Args:
            content: Text to analyze

        Returns:
            Issues in model response order (may be empty)

        Raises:
            ClassifierUnavailable: if the model is unreachable or its output
                is not a valid issues object
        """
        if self._mock_mode:
            logger.info("Mock: analyzing content for compliance issues")
            return generate_mock_results(content)

        if not self._live_ready:
            raise ClassifierUnavailable("LLM client not initialized")

        logger.info("Calling LLM for compliance analysis (content length: %d)", len(content))
        try:
            raw = self._llm.generate(
                build_compliance_prompt(content),
                system=SYSTEM_INSTRUCTION,
                max_tokens=self._max_tokens,
                timeout=self._timeout,
                json_mode=True,
            )
        except Exception as e:
            logger.error("Error analyzing content with LLM: %s", e)
            raise ClassifierUnavailable(f"LLM call failed: {e}") from e

        try:
            issues = parse_issues(extract_issue_list(parse_llm_json(raw)))
        except MalformedResponse as e:
            logger.error("Malformed classifier output: %s", e)
            raise ClassifierUnavailable(f"Malformed classifier output: {e}") from e

        logger.info("LLM compliance analysis completed (issues found: %d)", len(issues))
        return issues
