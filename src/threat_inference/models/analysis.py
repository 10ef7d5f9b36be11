"""
Output data models for the threat inference layer.

These models define the structured analysis assembled from model replies.
Replies are decoded leniently (see decoding.response_decoder) and then
coerced into these models, so the validators here normalise the common ways
a model drifts from the requested shape (casing, single strings instead of
lists, duplicated indicators).
"""

from typing import Any
from pydantic import BaseModel, Field, ConfigDict, field_validator

from threat_inference.models.enums import AnalysisStrategy, Severity, ThreatCategory


def _clean_str_list(value: Any) -> list[str]:
    """Coerce a decoded value into a list of non-empty, stripped strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        return []
    cleaned = []
    for item in value:
        if isinstance(item, (int, float)) and not isinstance(item, bool):
            item = str(item)
        if isinstance(item, str) and item.strip():
            cleaned.append(item.strip())
    return cleaned


def _dedupe(values: list[str]) -> list[str]:
    """Remove duplicates, keeping first-seen order."""
    seen: set[str] = set()
    unique = []
    for v in values:
        if v not in seen:
            seen.add(v)
            unique.append(v)
    return unique


def normalize_category(value: Any) -> Any:
    """Map a free-form category label onto the closed taxonomy."""
    if isinstance(value, ThreatCategory):
        return value
    if isinstance(value, str):
        label = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return ThreatCategory(label)
        except ValueError:
            return ThreatCategory.OTHER
    return value


def normalize_severity(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class IOCBundle(BaseModel):
    """
    Indicators of compromise extracted from one article.

    Each list is deduplicated (first occurrence wins) and never None.
    """

    model_config = ConfigDict(extra="ignore")

    ips: list[str] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)
    cves: list[str] = Field(default_factory=list)
    hashes: list[str] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)

    @field_validator("ips", "domains", "hashes", "urls", "emails", mode="before")
    @classmethod
    def unique_strings(cls, value: Any) -> list[str]:
        return _dedupe(_clean_str_list(value))

    @field_validator("cves", mode="before")
    @classmethod
    def unique_cves(cls, value: Any) -> list[str]:
        # CVE ids are case-insensitive; store them upper-cased
        return _dedupe([c.upper() for c in _clean_str_list(value)])

    def is_empty(self) -> bool:
        return not any(
            (self.ips, self.domains, self.cves, self.hashes, self.urls, self.emails)
        )


class ClassificationResult(BaseModel):
    """Reply shape of the small classifier tier (tiered strategy)."""

    model_config = ConfigDict(extra="ignore")

    tldr: str = Field(..., min_length=1, description="One sentence summary")
    category: ThreatCategory
    severity: Severity
    affected_sectors: list[str] = Field(default_factory=list)
    threat_actors: list[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, value: Any) -> Any:
        return normalize_category(value)

    @field_validator("severity", mode="before")
    @classmethod
    def lower_severity(cls, value: Any) -> Any:
        return normalize_severity(value)

    @field_validator("tldr", mode="before")
    @classmethod
    def strip_tldr(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("affected_sectors", "threat_actors", mode="before")
    @classmethod
    def string_lists(cls, value: Any) -> list[str]:
        return _clean_str_list(value)


class ExtractionResult(BaseModel):
    """Reply shape of the mid-size extractor tier (tiered strategy)."""

    model_config = ConfigDict(extra="ignore")

    key_points: list[str] = Field(default_factory=list)
    iocs: IOCBundle = Field(default_factory=IOCBundle)

    @field_validator("key_points", mode="before")
    @classmethod
    def string_list(cls, value: Any) -> list[str]:
        return _clean_str_list(value)

    @field_validator("iocs", mode="before")
    @classmethod
    def iocs_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, IOCBundle)) else {}


class AnalysisResult(BaseModel):
    """
    Complete structured analysis of one article.

    `strategy` records the path that actually ran (baseline or tiered),
    not the configured deployment mode.
    """

    model_config = ConfigDict(extra="ignore")

    tldr: str = Field(..., min_length=1, description="One sentence summary")
    key_points: list[str] = Field(default_factory=list)
    category: ThreatCategory
    severity: Severity
    affected_sectors: list[str] = Field(default_factory=list)
    threat_actors: list[str] = Field(default_factory=list)
    iocs: IOCBundle = Field(default_factory=IOCBundle)
    strategy: AnalysisStrategy

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, value: Any) -> Any:
        return normalize_category(value)

    @field_validator("severity", mode="before")
    @classmethod
    def lower_severity(cls, value: Any) -> Any:
        return normalize_severity(value)

    @field_validator("tldr", mode="before")
    @classmethod
    def strip_tldr(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("key_points", "affected_sectors", "threat_actors", mode="before")
    @classmethod
    def string_lists(cls, value: Any) -> list[str]:
        return _clean_str_list(value)

    @field_validator("iocs", mode="before")
    @classmethod
    def iocs_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, IOCBundle)) else {}

    @classmethod
    def from_parts(
        cls, classification: ClassificationResult, extraction: ExtractionResult
    ) -> "AnalysisResult":
        """Assemble a tiered analysis from both sub-call results."""
        return cls(
            tldr=classification.tldr,
            key_points=extraction.key_points,
            category=classification.category,
            severity=classification.severity,
            affected_sectors=classification.affected_sectors,
            threat_actors=classification.threat_actors,
            iocs=extraction.iocs,
            strategy=AnalysisStrategy.TIERED,
        )
