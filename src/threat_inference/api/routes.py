"""
API routes for article analysis.

Endpoints:
- GET  /health  inference service reachability
- POST /analyze structured analysis of one article
- POST /embed   embedding vector for free text
- POST /trends  weekly trend digest over analyzed articles
- GET  /search  semantic search over indexed articles
- GET  /budget  today's compute budget position
"""

import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram

from threat_inference.api.dependencies import get_analysis_service, get_settings
from threat_inference.api.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    EmbedRequest,
    EmbedResponse,
    HealthResponse,
    SearchResponse,
    TrendsRequest,
    TrendsResponse,
)
from threat_inference.config import Settings
from threat_inference.service import ArticleAnalysisService, BudgetReport

logger = structlog.get_logger(__name__)

# Prometheus metrics
analysis_requests_total = Counter(
    "analysis_requests_total",
    "Total analysis requests",
    ["endpoint", "status"]
)

analysis_request_duration_seconds = Histogram(
    "analysis_request_duration_seconds",
    "Analysis request duration in seconds",
    ["endpoint"]
)

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={
        200: {"description": "Inference service reachable"},
        503: {"description": "Inference service unreachable or credentials rejected"},
    },
)
async def health_check(
    service: ArticleAnalysisService = Depends(get_analysis_service),
    settings: Settings = Depends(get_settings),
):
    """Check the Workers AI token and report the budget status alongside."""
    healthy = await service.router.client.health_check()
    services = {
        "workers_ai": "ok" if healthy else "unreachable",
        "budget": service.governor.summary().status.value,
    }

    response = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=settings.APP_VERSION,
        services=services,
        timestamp=datetime.now(timezone.utc),
    )
    logger.info("Health check", status=response.status, services=services)
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Analyze one article",
    description="""
    Run the configured analysis strategy (baseline, tiered, canary or shadow)
    on one article and index it for semantic search. A failed analysis
    returns 503 with a null result: the article should be retried later, it
    is not benign.
    """,
    responses={
        200: {"description": "Analysis completed"},
        503: {"description": "No analysis produced (upstream failure, unusable reply or timeout)"},
    },
)
async def analyze_article(
    request: AnalyzeRequest,
    response: Response,
    service: ArticleAnalysisService = Depends(get_analysis_service),
) -> AnalyzeResponse:
    start_time = time.perf_counter()
    config = service.default_config
    if request.mode is not None:
        config = config.model_copy(update={"mode": request.mode})

    result = await service.analyze(request.article, config, request.timeout)
    outcome = "success" if result is not None else "failed"

    analysis_requests_total.labels(endpoint="analyze", status=outcome).inc()
    analysis_request_duration_seconds.labels(endpoint="analyze").observe(
        time.perf_counter() - start_time
    )

    if result is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return AnalyzeResponse(status=outcome, article_id=request.article.id)

    indexed = await service.index_article(request.article, result, config)
    return AnalyzeResponse(
        status=outcome, article_id=request.article.id, result=result, indexed=indexed
    )


@router.post(
    "/embed",
    response_model=EmbedResponse,
    summary="Embed text",
    responses={503: {"description": "Embedding unavailable"}},
)
async def embed_text(
    request: EmbedRequest,
    response: Response,
    service: ArticleAnalysisService = Depends(get_analysis_service),
) -> EmbedResponse:
    vector = await service.embed(request.text)
    analysis_requests_total.labels(
        endpoint="embed", status="success" if vector is not None else "failed"
    ).inc()

    if vector is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return EmbedResponse(status="failed")
    return EmbedResponse(status="success", dimensions=len(vector), vector=vector)


@router.post(
    "/trends",
    response_model=TrendsResponse,
    summary="Weekly trend analysis",
)
async def summarize_trends(
    request: TrendsRequest,
    service: ArticleAnalysisService = Depends(get_analysis_service),
) -> TrendsResponse:
    articles = [item.article for item in request.items]
    summaries = [item.analysis for item in request.items]
    analysis = await service.summarize_trends(articles, summaries)
    analysis_requests_total.labels(endpoint="trends", status="success").inc()
    return TrendsResponse(analysis=analysis, article_count=len(articles))


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Semantic search",
)
async def search(
    q: str = Query(..., min_length=1, max_length=500, description="Free-text query"),
    limit: int = Query(10, ge=1, le=50),
    service: ArticleAnalysisService = Depends(get_analysis_service),
) -> SearchResponse:
    matches = await service.semantic_search(q, limit)
    analysis_requests_total.labels(endpoint="search", status="success").inc()
    return SearchResponse(query=q, matches=matches)


@router.get(
    "/budget",
    response_model=BudgetReport,
    summary="Daily compute budget",
    description="""
    Today's compute usage, per-model breakdown and an estimate of how many
    more articles fit at the given average cost per article.
    """,
)
async def budget(
    units_per_article: float = Query(..., ge=0, description="Average units one article costs"),
    service: ArticleAnalysisService = Depends(get_analysis_service),
) -> BudgetReport:
    return service.budget_report(units_per_article)
