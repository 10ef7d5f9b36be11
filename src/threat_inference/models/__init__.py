"""
Pydantic data models for the threat inference layer.

Includes:
- Input model (Article)
- Output models (AnalysisResult, ClassificationResult, ExtractionResult, IOCBundle)
- Enums (ThreatCategory, Severity, DeploymentMode, AnalysisStrategy, BudgetStatus, OutputShape)
- Configuration values (DeploymentConfig, ModelTier, ModelCatalog)
- ObservabilityEvent
"""

from threat_inference.models.enums import (
    AnalysisStrategy,
    BudgetStatus,
    DeploymentMode,
    OutputShape,
    Severity,
    ThreatCategory,
)
from threat_inference.models.article import Article
from threat_inference.models.analysis import (
    AnalysisResult,
    ClassificationResult,
    ExtractionResult,
    IOCBundle,
)
from threat_inference.models.deployment import DeploymentConfig
from threat_inference.models.tiers import ModelCatalog, ModelTier
from threat_inference.models.events import ObservabilityEvent

__all__ = [
    # Enums
    "AnalysisStrategy",
    "BudgetStatus",
    "DeploymentMode",
    "OutputShape",
    "Severity",
    "ThreatCategory",
    # Input model
    "Article",
    # Output models
    "AnalysisResult",
    "ClassificationResult",
    "ExtractionResult",
    "IOCBundle",
    # Configuration values
    "DeploymentConfig",
    "ModelCatalog",
    "ModelTier",
    # Events
    "ObservabilityEvent",
]
