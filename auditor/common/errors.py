"""Error taxonomy for the detection tiers."""


class ComplianceError(Exception):
    """Base class for detection-tier failures."""
    pass


class ClassifierUnavailable(ComplianceError):
    """Remote classifier is unreachable or not configured."""
    pass


class AgentUnavailable(ComplianceError):
    """Rules agent is not authenticated, not configured, or the call failed."""
    pass


class MalformedResponse(ComplianceError):
    """Structured output is missing expected fields or cannot be parsed."""
    pass
