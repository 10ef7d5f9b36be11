"""
Article analysis facade.

The single entry point callers (scheduled ingestion, API routes) use:
- analyze(): structured analysis through the strategy router
- embed(): embedding vector for an article or query
- index_article(): make an analyzed article searchable
- summarize_trends(): weekly digest over already-analyzed articles
- semantic_search(): nearest articles for a free-text query
- budget_report(): quota position for "stop when critical" policies

Every operation degrades to a sentinel (None, False, [], fixed string) instead of
raising, so one bad article never aborts a batch.
"""

from collections.abc import Sequence
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from threat_inference.budget.governor import BudgetGovernor, BudgetSummary, ModelUsage
from threat_inference.decoding.response_decoder import extract_embedding, extract_text_response
from threat_inference.inference.exceptions import InferenceClientError
from threat_inference.inference.prompt_builder import TrendSummary
from threat_inference.models.analysis import AnalysisResult
from threat_inference.models.article import Article
from threat_inference.models.deployment import DeploymentConfig
from threat_inference.models.enums import DeploymentMode
from threat_inference.models.tiers import ModelTier
from threat_inference.routing.router import StrategyRouter
from threat_inference.search.index import BaseVectorIndex, SearchMatch


logger = structlog.get_logger(__name__)

TREND_UNAVAILABLE = "Unable to generate trend analysis."
TREND_ERROR = "Error generating trend analysis."


class BudgetReport(BaseModel):
    """Budget summary plus per-model breakdown and remaining capacity."""

    summary: BudgetSummary
    breakdown: list[ModelUsage] = Field(default_factory=list)
    units_per_article: float
    remaining_articles: int


class ArticleAnalysisService:
    """
    Facade over the router, governor and vector index.

    Attributes:
        router: StrategyRouter used for analysis and for charged inference calls
        governor: BudgetGovernor shared with the router
        default_config: DeploymentConfig used when a call does not pass one
        vector_index: Optional index for semantic_search
        default_timeout: Analysis deadline in seconds (None = no deadline)
    """

    def __init__(
        self,
        router: StrategyRouter,
        governor: BudgetGovernor,
        default_config: DeploymentConfig,
        vector_index: Optional[BaseVectorIndex] = None,
        default_timeout: Optional[float] = None,
    ):
        self.router = router
        self.governor = governor
        self.default_config = default_config
        self.vector_index = vector_index
        self.default_timeout = default_timeout

    async def analyze(
        self,
        article: Article,
        config: Optional[DeploymentConfig] = None,
        timeout: Optional[float] = None,
    ) -> Optional[AnalysisResult]:
        """Analyze one article; None means "retry later"."""
        return await self.router.analyze(
            article,
            config or self.default_config,
            timeout if timeout is not None else self.default_timeout,
        )

    def _embedding_tier(self, config: DeploymentConfig) -> ModelTier:
        if config.mode is DeploymentMode.BASELINE:
            return self.router.catalog.embedding_baseline
        return self.router.catalog.embedding

    async def embed(
        self,
        text: str,
        config: Optional[DeploymentConfig] = None,
    ) -> Optional[list[float]]:
        """
        Embed text (truncated to the embedding limit).

        Returns:
            The vector, or None on any failure or for empty text
        """
        if not text or not text.strip():
            logger.warning("Refusing to embed empty text")
            return None

        tier = self._embedding_tier(config or self.default_config)
        payload = self.router.prompt_builder.build_embedding_payload(text)
        try:
            reply = await self.router.invoke(tier, payload)
        except InferenceClientError as e:
            logger.warning(
                "Embedding call failed",
                model=tier.key,
                error=e.message,
                error_type=type(e).__name__,
            )
            return None

        vector = extract_embedding(reply, tier.dimensions)
        if vector is None:
            logger.warning("Invalid embedding reply", model=tier.key)
        return vector

    @staticmethod
    def embedding_text(article: Article, analysis: AnalysisResult) -> str:
        """Text indexed for an analyzed article: title, tldr and key points."""
        return " ".join([article.title, analysis.tldr, *analysis.key_points])

    async def index_article(
        self,
        article: Article,
        analysis: AnalysisResult,
        config: Optional[DeploymentConfig] = None,
    ) -> bool:
        """
        Embed an analyzed article and upsert it into the vector index.

        Returns:
            True when the article is searchable; False when there is no
            index, the embedding failed, or the index rejected the vector
        """
        if self.vector_index is None:
            return False

        vector = await self.embed(self.embedding_text(article, analysis), config)
        if vector is None:
            logger.warning("Article not indexed: embedding unavailable", article_id=article.id)
            return False

        try:
            await self.vector_index.upsert(article.id, vector)
        except Exception as e:
            logger.error(
                "Vector index upsert failed",
                article_id=article.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        logger.debug("Article indexed", article_id=article.id)
        return True

    async def summarize_trends(
        self,
        articles: Sequence[Article],
        summaries: Sequence[TrendSummary],
        config: Optional[DeploymentConfig] = None,
    ) -> str:
        """
        Weekly trend analysis over analyzed articles.

        summaries[i] is the analysis of articles[i]. Always returns a string:
        the model's text, TREND_UNAVAILABLE for an unusable reply, or
        TREND_ERROR when the call fails.
        """
        config = config or self.default_config
        tier = (
            self.router.catalog.generalist
            if config.mode is DeploymentMode.BASELINE
            else self.router.catalog.extractor
        )

        try:
            payload = self.router.prompt_builder.build_trends_payload(articles, summaries)
            reply = await self.router.invoke(tier, payload)
        except Exception as e:
            logger.error(
                "Trend analysis failed",
                model=tier.key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TREND_ERROR

        text = extract_text_response(reply, fallback="")
        if not text.strip():
            return TREND_UNAVAILABLE

        logger.info("Trend analysis generated", model=tier.key, articles=len(articles))
        return text

    async def semantic_search(
        self,
        query: str,
        limit: int = 10,
        config: Optional[DeploymentConfig] = None,
    ) -> list[SearchMatch]:
        """Nearest articles to a free-text query; [] on any failure."""
        if self.vector_index is None:
            logger.warning("Semantic search requested without a vector index")
            return []

        vector = await self.embed(query, config)
        if vector is None:
            return []

        try:
            return await self.vector_index.query(vector, limit)
        except Exception as e:
            logger.error("Vector index query failed", error=str(e), error_type=type(e).__name__)
            return []

    def budget_report(self, units_per_article: float) -> BudgetReport:
        """Today's budget position and how many more articles fit."""
        return BudgetReport(
            summary=self.governor.summary(),
            breakdown=self.governor.breakdown(),
            units_per_article=units_per_article,
            remaining_articles=self.governor.remaining_capacity(units_per_article),
        )
