"""
Classification Orchestrator

Runs content through an ordered list of detection sources and returns the
first result produced without an error:

  Tier 1: Remote classifier (LLM)         - if enabled
  Tier 2: Rules agent (Salesforce)        - if enabled
  Tier 3: Local pattern matcher           - always

A source that succeeds with zero issues ends the chain. Only a failing
source hands over to the next one. ``scan`` never raises.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..common.config import AuditorConfig
from ..common.schemas import Issue
from .classifier import RemoteClassifier
from .pattern_matcher import scan_locally
from .rules_agent import AUTO_MONITOR_TOPIC, RulesAgentClient

logger = logging.getLogger("auditor.scanner.orchestrator")


class DetectionSource(ABC):
    """One fallback tier. ``attempt`` raises to cede to the next tier."""

    name: str = "source"

    @abstractmethod
    async def attempt(self, content: str) -> List[Issue]:
        pass


class ClassifierSource(DetectionSource):
    name = "classifier"

    def __init__(self, classifier: RemoteClassifier):
        self._classifier = classifier

    async def attempt(self, content: str) -> List[Issue]:
        # SDK calls are blocking; keep them off the event loop
        return await asyncio.to_thread(self._classifier.analyze, content)


class RulesAgentSource(DetectionSource):
    name = "rules_agent"

    def __init__(self, agent: RulesAgentClient, topic: str = AUTO_MONITOR_TOPIC):
        self._agent = agent
        self._topic = topic

    async def attempt(self, content: str) -> List[Issue]:
        response = await self._agent.invoke(self._topic, content)
        return list(response.issues)


class PatternSource(DetectionSource):
    name = "pattern"

    async def attempt(self, content: str) -> List[Issue]:
        return scan_locally(content)


@dataclass
class ScanOutcome:
    """Issues plus the name of the tier that produced them"""
    issues: List[Issue]
    source: Optional[str] = None


class ClassificationOrchestrator:
    """
    Evaluates detection sources left to right with early return.

    The pattern source is always appended as the terminal tier, so the
    chain cannot come back empty-handed because of failures.
    """

    def __init__(self, sources: Sequence[DetectionSource] = ()):
        self._sources: List[DetectionSource] = [
            s for s in sources if not isinstance(s, PatternSource)
        ]
        self._fallback = PatternSource()

    @classmethod
    def from_config(
        cls,
        config: AuditorConfig,
        classifier: Optional[RemoteClassifier] = None,
        agent: Optional[RulesAgentClient] = None,
    ) -> "ClassificationOrchestrator":
        """Build the chain from feature flags (classifier before agent)"""
        sources: List[DetectionSource] = []
        if config.features.use_classifier and classifier is not None:
            sources.append(ClassifierSource(classifier))
        if config.features.use_rules_agent and agent is not None:
            sources.append(RulesAgentSource(agent))
        return cls(sources)

    @property
    def tiers(self) -> List[str]:
        return [s.name for s in self._sources] + [self._fallback.name]

    async def scan(self, content: Optional[str]) -> List[Issue]:
        """
        Classify content for compliance issues.

        Args:
            content: Message text or downloaded file text

        Returns:
            Issues from the first tier that did not fail; [] for empty input
        """
        outcome = await self.scan_with_source(content)
        return outcome.issues

    async def scan_with_source(self, content: Optional[str]) -> ScanOutcome:
        if not content:
            return ScanOutcome(issues=[])

        for source in self._sources:
            try:
                logger.info("Scanning with %s", source.name)
                issues = await source.attempt(content)
                return ScanOutcome(issues=issues, source=source.name)
            except Exception as e:
                logger.error("Error scanning with %s, falling back: %s", source.name, e)

        logger.info("Using local scanning as fallback")
        return ScanOutcome(issues=scan_locally(content), source=self._fallback.name)
