"""
API-specific request and response models for FastAPI endpoints.

These wrap the core domain models (Article, AnalysisResult, BudgetReport)
with request options and status information.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from threat_inference.models.analysis import AnalysisResult
from threat_inference.models.article import Article
from threat_inference.models.enums import DeploymentMode
from threat_inference.search.index import SearchMatch


class AnalyzeRequest(BaseModel):
    """Request for single-article analysis."""

    article: Article
    mode: Optional[DeploymentMode] = Field(
        default=None,
        description="Override the configured deployment mode for this call",
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds before the analysis is abandoned",
    )


class AnalyzeResponse(BaseModel):
    """Response for analysis; result is null when the article must be retried later."""

    status: str = Field(description="Request status", examples=["success", "failed"])
    article_id: str
    result: Optional[AnalysisResult] = None
    indexed: bool = Field(default=False, description="Whether the article was added to the search index")


class EmbedRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Text to embed (truncated server-side)")


class EmbedResponse(BaseModel):
    status: str = Field(description="Request status", examples=["success", "failed"])
    dimensions: int = 0
    vector: Optional[list[float]] = None


class TrendItem(BaseModel):
    """One analyzed article for the weekly digest."""

    article: Article
    analysis: AnalysisResult


class TrendsRequest(BaseModel):
    items: list[TrendItem] = Field(..., min_length=1, max_length=200)


class TrendsResponse(BaseModel):
    analysis: str
    article_count: int


class SearchResponse(BaseModel):
    query: str
    matches: list[SearchMatch] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Service health status."""

    status: str = Field(description="healthy or unhealthy")
    version: str
    services: dict[str, str] = Field(default_factory=dict)
    timestamp: datetime
