"""
Input data model: a security article fetched by the upstream feed layer.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class Article(BaseModel):
    """
    Security article to analyze.

    Owned by the caller; the inference layer never mutates it.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., description="Stable article identifier")
    title: str = Field(..., description="Article headline")
    content: str = Field(default="", description="Article body text (may be empty)")
    source: str = Field(..., description="Feed or publisher name")
    url: Optional[str] = Field(default=None, description="Canonical article URL")
    published_at: datetime = Field(..., description="Publication timestamp (UTC)")
    fetched_at: datetime = Field(..., description="Timestamp when the feed was fetched (UTC)")
