"""
Enumerations for the threat inference data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class ThreatCategory(str, Enum):
    """
    Closed taxonomy of threat categories.

    Single-label: each analysis carries exactly one category.
    OTHER is the catch-all for articles that fit no specific category.
    """

    RANSOMWARE = "ransomware"
    APT = "apt"
    VULNERABILITY = "vulnerability"
    PHISHING = "phishing"
    MALWARE = "malware"
    DATA_BREACH = "data_breach"
    DDOS = "ddos"
    SUPPLY_CHAIN = "supply_chain"
    INSIDER_THREAT = "insider_threat"
    CLOUD_SECURITY = "cloud_security"
    WEB_SECURITY = "web_security"
    ZERO_DAY = "zero_day"
    CRYPTOJACKING = "cryptojacking"
    IOT_SECURITY = "iot_security"
    DISINFORMATION = "disinformation"
    POLICY = "policy"
    OTHER = "other"


class Severity(str, Enum):
    """
    Threat severity classification.

    Ordered from highest to lowest (can be used for ordinal comparisons).
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    def rank(self) -> int:
        """Get ordinal value for severity (0=info, 4=critical)."""
        order = [Severity.INFO, Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]
        return order.index(self)


class DeploymentMode(str, Enum):
    """Configured model strategy for a deployment."""

    BASELINE = "baseline"
    TIERED = "tiered"
    CANARY = "canary"
    SHADOW = "shadow"


class AnalysisStrategy(str, Enum):
    """Strategy that actually produced an analysis."""

    BASELINE = "baseline"
    TIERED = "tiered"


class BudgetStatus(str, Enum):
    """Daily budget health."""

    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class OutputShape(str, Enum):
    """What a model tier returns."""

    TEXT = "text"
    STRUCTURED = "structured"
    VECTOR = "vector"
